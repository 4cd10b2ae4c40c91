"""URL configuration for the locations app, mounted at /api/locations/."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import DistrictViewSet, ProvinceViewSet

router = DefaultRouter()
router.register(r'provinces', ProvinceViewSet, basename='province')
router.register(r'districts', DistrictViewSet, basename='district')

app_name = 'locations'

urlpatterns = [
    path('', include(router.urls)),
]
