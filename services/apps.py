"""
Django application configuration for the services app.

The services app holds the property-hierarchy rules, the Google Places
client, the nearby-places cache and the mailer used across KorX.
"""

from django.apps import AppConfig


class ServicesConfig(AppConfig):
    """Application configuration for the services app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'services'
    verbose_name = 'Services'
