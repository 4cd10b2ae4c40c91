"""Admin dashboard routes, mounted at /api/admin/."""

from django.urls import path

from . import admin_views

app_name = 'admin-api'

urlpatterns = [
    path('stats/', admin_views.dashboard_stats, name='stats'),
    path('users/', admin_views.AdminUserListView.as_view(), name='users'),
    path('users/<int:pk>/', admin_views.delete_user, name='user-delete'),
    path('users/<int:pk>/role/', admin_views.update_role, name='user-role'),
    path('users/<int:pk>/permissions/', admin_views.user_permissions, name='user-permissions'),
    path('users/<int:pk>/container-limits/', admin_views.container_limits, name='user-container-limits'),
    path('properties/', admin_views.AdminPropertyListView.as_view(), name='properties'),
    path('deals/', admin_views.AdminDealListView.as_view(), name='deals'),
    path('permissions/', admin_views.permission_catalog, name='permissions'),
]
