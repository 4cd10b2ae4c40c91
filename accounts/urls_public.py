"""Public user profile routes, mounted at /api/public/users/."""

from django.urls import path

from . import views

app_name = 'public-users'

urlpatterns = [
    path('agents/list/', views.public_agents, name='agents'),
    path('listers/list/', views.public_listers, name='listers'),
    path('<int:pk>/', views.public_profile, name='profile'),
]
