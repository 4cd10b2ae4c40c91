"""
Accounts Admin - KorX Backend
Django admin configuration for users, feature permissions and limits.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import AgentContainerLimit, PasswordResetCode, User, UserPermission


# =============================================================================
# INLINE ADMIN CLASSES
# =============================================================================

class UserPermissionInline(admin.TabularInline):
    model = UserPermission
    extra = 0
    fields = ['permission_key', 'created_at']
    readonly_fields = ['created_at']


class AgentContainerLimitInline(admin.TabularInline):
    model = AgentContainerLimit
    extra = 0


# =============================================================================
# MAIN ADMIN CLASSES
# =============================================================================

@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    """Django's user admin extended with the platform profile and role."""

    list_display = ['username', 'full_name', 'phone', 'email', 'role', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['username', 'full_name', 'phone', 'email']
    ordering = ['-date_joined']
    inlines = [UserPermissionInline, AgentContainerLimitInline]

    fieldsets = DjangoUserAdmin.fieldsets + (
        ('Platform profile', {
            'fields': ('full_name', 'phone', 'role', 'profile_picture', 'bio', 'address', 'national_id')
        }),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        ('Platform profile', {
            'fields': ('full_name', 'phone', 'email', 'role')
        }),
    )


@admin.register(PasswordResetCode)
class PasswordResetCodeAdmin(admin.ModelAdmin):
    list_display = ['user', 'used', 'expires_at', 'created_at']
    list_filter = ['used']
    raw_id_fields = ['user']
    readonly_fields = ['otp', 'created_at', 'updated_at']
