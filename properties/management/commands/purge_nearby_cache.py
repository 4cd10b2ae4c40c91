# properties/management/commands/purge_nearby_cache.py
"""
Django management command to delete expired nearby-places cache rows.

Usage:
    python manage.py purge_nearby_cache
    python manage.py purge_nearby_cache --all   # Drop every cached row
"""

from django.core.management.base import BaseCommand

from properties.models import NearbyCache
from services.nearby import purge_expired


class Command(BaseCommand):
    help = 'Delete expired Google Places results from the nearby cache'

    def add_arguments(self, parser):
        parser.add_argument(
            '--all',
            action='store_true',
            help='Delete every cached row, expired or not',
        )

    def handle(self, *args, **options):
        if options['all']:
            deleted, _ = NearbyCache.objects.all().delete()
        else:
            deleted = purge_expired()

        if deleted:
            self.stdout.write(self.style.SUCCESS(f'✓ Deleted {deleted} cached rows'))
        else:
            self.stdout.write('Nothing to delete')
