from django.apps import AppConfig


class PeopleConfig(AppConfig):
    """Owners, sellers and buyers referenced by properties and deals."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'people'
    verbose_name = 'People'
