from django.apps import AppConfig


class DealsConfig(AppConfig):
    """Sale and rental transactions on listings."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'deals'
    verbose_name = 'Deals'
