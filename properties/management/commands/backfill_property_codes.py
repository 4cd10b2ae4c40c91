# properties/management/commands/backfill_property_codes.py
"""
Django management command to assign property codes to records without one.

Usage:
    python manage.py backfill_property_codes
    python manage.py backfill_property_codes --dry-run   # Show codes without saving
    python manage.py backfill_property_codes --listings-only
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from properties.models import Property


class Command(BaseCommand):
    help = 'Assign {Owner}{Agent}-KorX-{NNNNNN} codes to properties that have none'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Print the codes that would be assigned without saving them',
        )

        parser.add_argument(
            '--listings-only',
            action='store_true',
            help='Skip containers',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        queryset = Property.objects.filter(property_code__isnull=True).select_related(
            'owner', 'agent', 'created_by'
        ).order_by('id')
        if options['listings_only']:
            queryset = queryset.listings()

        total = queryset.count()
        if total == 0:
            self.stdout.write(self.style.SUCCESS('✓ All properties already have codes'))
            return

        self.stdout.write(f'Found {total} properties without a code')
        if dry_run:
            self.stdout.write(self.style.WARNING('Dry run: nothing will be saved'))

        assigned = 0
        for prop in queryset:
            owner_name = prop.owner_name or (prop.owner.full_name if prop.owner else None)
            agent = prop.agent or prop.created_by
            agent_name = agent.full_name if agent else None

            with transaction.atomic():
                code = Property.generate_property_code(owner_name, agent_name)
                if not dry_run:
                    prop.property_code = code
                    prop.save(update_fields=['property_code'])

            assigned += 1
            self.stdout.write(f'  {prop.id}: {code}')

        # In a dry run every row sees the same "latest" code
        self.stdout.write('\n' + '=' * 60)
        self.stdout.write(self.style.SUCCESS(f'✓ Codes assigned: {assigned}' if not dry_run
                                             else f'✓ Codes previewed: {assigned}'))
        self.stdout.write('=' * 60 + '\n')
