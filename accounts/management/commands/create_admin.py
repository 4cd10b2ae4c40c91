# accounts/management/commands/create_admin.py
"""
Django management command to create or update the platform admin account.

Usage:
    python manage.py create_admin
    python manage.py create_admin --password s3cret
"""

import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from accounts.models import ROLE_ADMIN

ADMIN_PHONE = '0000000000'
ADMIN_USERNAME = 'admin'
ADMIN_EMAIL = 'admin@realestate.com'


class Command(BaseCommand):
    help = 'Create the admin account, or reset its role and password if it exists'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default=os.environ.get('ADMIN_PASSWORD', 'admin123'),
            help='Password for the admin account (default: $ADMIN_PASSWORD or admin123)',
        )

    def handle(self, *args, **options):
        User = get_user_model()
        password = options['password']

        user = User.objects.filter(phone=ADMIN_PHONE).first() or User.objects.filter(
            username=ADMIN_USERNAME
        ).first()

        if user is None:
            user = User(phone=ADMIN_PHONE, username=ADMIN_USERNAME, email=ADMIN_EMAIL)
            created = True
        else:
            created = False

        user.full_name = user.full_name or 'Administrator'
        user.role = ROLE_ADMIN
        user.is_active = True
        user.is_staff = True
        user.is_superuser = True
        user.set_password(password)
        user.save()

        if created:
            self.stdout.write(self.style.SUCCESS(f'✓ Admin created (phone {ADMIN_PHONE}, username {ADMIN_USERNAME})'))
        else:
            self.stdout.write(self.style.SUCCESS(f'✓ Admin {user.username} updated'))
