"""URL configuration for the people app, mounted at /api/."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import PersonViewSet, profile

router = DefaultRouter()
router.register(r'persons', PersonViewSet, basename='person')

app_name = 'people'

urlpatterns = [
    path('profile/', profile, name='profile'),
    path('', include(router.urls)),
]
