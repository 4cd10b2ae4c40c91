#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

KorX Backend Management Script
==============================

Development:
  python manage.py runserver                  # Start development server
  python manage.py migrate                    # Apply migrations
  python manage.py test                       # Run tests

KorX Specific Commands:
  python manage.py create_admin               # Create or reset the admin account
  python manage.py load_locations             # Seed provinces, districts and areas
  python manage.py backfill_property_codes    # Assign missing property codes
  python manage.py purge_nearby_cache         # Drop expired nearby-places rows
"""

import os
import sys


def main():
    """Run administrative tasks."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'korx.settings')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        error_msg = (
            "Couldn't import Django. This usually means:\n"
            "  1. Django is not installed - run: pip install -e .\n"
            "  2. Virtual environment is not activated\n\n"
            f"Current Python path: {sys.executable}\n"
            f"DJANGO_SETTINGS_MODULE: {os.environ.get('DJANGO_SETTINGS_MODULE', 'Not set')}\n"
        )
        raise ImportError(error_msg) from exc

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
