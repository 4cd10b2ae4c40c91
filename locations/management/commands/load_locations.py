"""
Django management command to load the province / district / area tree.

The input file is JSON shaped as:

    {"Kabul": {"Kabul City": ["Karte Char", "Shahr-e Naw"], "Paghman": []}}

Existing rows are reused, so the command can be run repeatedly.

Usage:
    python manage.py load_locations locations.json
    python manage.py load_locations locations.json --dry-run
"""

import json

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from locations.models import Area, District, Province


class Command(BaseCommand):
    help = 'Load provinces, districts and areas from a JSON tree'

    def add_arguments(self, parser):
        parser.add_argument('json_file', type=str, help='Path to the locations JSON file')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Preview changes without saving to database',
        )

    def handle(self, *args, **options):
        json_file = options['json_file']
        dry_run = options['dry_run']

        try:
            with open(json_file, encoding='utf-8') as handle:
                tree = json.load(handle)
        except FileNotFoundError:
            raise CommandError(f'File not found: {json_file}')
        except ValueError as e:
            raise CommandError(f'Invalid JSON in {json_file}: {e}')

        if not isinstance(tree, dict):
            raise CommandError('Top level must be an object of provinces')

        stats = {'provinces': 0, 'districts': 0, 'areas': 0}

        with transaction.atomic():
            for province_name, districts in tree.items():
                province, created = Province.objects.get_or_create(name=province_name.strip())
                stats['provinces'] += int(created)

                for district_name, areas in (districts or {}).items():
                    district, created = District.objects.get_or_create(
                        province=province,
                        name=district_name.strip(),
                    )
                    stats['districts'] += int(created)

                    for area_name in areas or []:
                        _, created = Area.objects.get_or_create(
                            district=district,
                            name=area_name.strip(),
                        )
                        stats['areas'] += int(created)

            if dry_run:
                transaction.set_rollback(True)

        summary = (
            f"{stats['provinces']} provinces, {stats['districts']} districts, "
            f"{stats['areas']} areas created"
        )
        if dry_run:
            self.stdout.write(self.style.WARNING(f"DRY RUN - would have: {summary}"))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
