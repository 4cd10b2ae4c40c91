from django.apps import AppConfig


class LocationsConfig(AppConfig):
    """Province, district and area taxonomy."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'locations'
    verbose_name = 'Locations'
