"""
Properties App Configuration - KorX Backend
Django app configuration for the properties application.
"""

from django.apps import AppConfig


class PropertiesConfig(AppConfig):
    """
    Configuration for the Properties app.

    This app manages:
    - Standalone listings
    - Containers (towers, markets, sharaks) and their units
    - Ownership history and the nearby places cache
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'properties'
    verbose_name = 'Properties & Containers'
