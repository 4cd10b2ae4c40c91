"""
Account models for the KorX platform.

This module implements the identity side of the system:
- User: login identity with a platform role (admin, agent, user)
- UserPermission: feature keys granted to agents by an administrator
- PasswordResetCode: short lived one time codes for the forgot-password flow
- AgentContainerLimit: per-agent caps on how many containers of a type they may create

Role semantics live on the User model so every app can ask the same
questions (``user.is_admin_role``, ``user.has_app_permission(...)``).
"""

import logging

from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

logger = logging.getLogger(__name__)


# =============================================================================
# ROLE AND PERMISSION CHOICES
# =============================================================================

ROLE_ADMIN = 'admin'
ROLE_AGENT = 'agent'
ROLE_USER = 'user'

ROLE_CHOICES = [
    (ROLE_ADMIN, 'Admin'),
    (ROLE_AGENT, 'Agent'),
    (ROLE_USER, 'User'),
]

CONTAINER_TYPE_CHOICES = [
    ('tower', 'Tower'),
    ('market', 'Market'),
    ('sharak', 'Sharak'),
]


# =============================================================================
# USER MODEL
# =============================================================================

class UserManager(DjangoUserManager):
    """Default manager that gives superusers the admin platform role."""

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', ROLE_ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Platform account.

    Login accepts either the phone number or the username. The ``role``
    field drives authorization: admins bypass permission checks, agents
    need explicit permission keys, plain users can only browse.
    """

    full_name = models.CharField(max_length=255, blank=True, default='')
    phone = models.CharField(
        max_length=20,
        unique=True,
        help_text="Primary login identifier"
    )
    profile_picture = models.CharField(max_length=255, blank=True, null=True)
    bio = models.TextField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    national_id = models.CharField(max_length=50, blank=True, null=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_USER)

    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    REQUIRED_FIELDS = ['email', 'phone']

    class Meta:
        db_table = 'users'
        ordering = ['-date_joined']
        verbose_name = 'User'
        verbose_name_plural = 'Users'

        indexes = [
            models.Index(fields=['role'], name='users_role_idx'),
        ]

    def __str__(self):
        return self.full_name or self.username

    def __repr__(self):
        return f"<User: {self.username} ({self.role})>"

    @property
    def is_admin_role(self):
        return self.role == ROLE_ADMIN

    @property
    def is_agent_role(self):
        return self.role == ROLE_AGENT

    def get_permission_keys(self):
        """Return the granted permission keys as a plain list."""
        return list(
            self.app_permissions.order_by('permission_key').values_list('permission_key', flat=True)
        )

    def has_app_permission(self, *keys):
        """
        Check feature access.

        Admins always pass. Agents pass when they hold any one of ``keys``.
        Every other role fails.
        """
        if self.is_admin_role:
            return True
        if not self.is_agent_role:
            return False
        return self.app_permissions.filter(permission_key__in=keys).exists()


# =============================================================================
# USER PERMISSION MODEL
# =============================================================================

class UserPermission(models.Model):
    """A single feature key granted to a user."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='app_permissions'
    )
    permission_key = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'user_permissions'
        ordering = ['user', 'permission_key']

        constraints = [
            models.UniqueConstraint(
                fields=['user', 'permission_key'],
                name='unique_permission_per_user'
            )
        ]

    def __str__(self):
        return f"{self.user_id}:{self.permission_key}"


# =============================================================================
# PASSWORD RESET CODES
# =============================================================================

class PasswordResetCode(models.Model):
    """Six digit one time code mailed during the forgot-password flow."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reset_codes'
    )
    otp = models.CharField(max_length=6)
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'otps'
        ordering = ['-created_at', '-id']

        indexes = [
            models.Index(fields=['user', 'otp'], name='otps_user_otp_idx'),
        ]

    def __str__(self):
        return f"Reset code for user {self.user_id}"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()


# =============================================================================
# AGENT CONTAINER LIMITS
# =============================================================================

class AgentContainerLimit(models.Model):
    """
    Upper bound on containers an agent may create per container type.

    A null ``max_count`` means unlimited; the row is kept only so the admin
    screen can show an explicit value.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='container_limits'
    )
    container_type = models.CharField(max_length=10, choices=CONTAINER_TYPE_CHOICES)
    max_count = models.PositiveIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(1)]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agent_container_limits'
        ordering = ['user', 'container_type']

        constraints = [
            models.UniqueConstraint(
                fields=['user', 'container_type'],
                name='unique_container_limit_per_type'
            )
        ]

    def __str__(self):
        limit = self.max_count if self.max_count is not None else 'unlimited'
        return f"{self.user_id} {self.container_type}: {limit}"
