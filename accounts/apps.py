"""
Django application configuration for the accounts app.

The accounts app owns the custom user model, agent feature permissions,
password reset codes and per-agent container limits.
"""

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'accounts'
    verbose_name = 'Accounts'
