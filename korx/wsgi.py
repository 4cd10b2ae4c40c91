"""
WSGI config for the korx project.

It exposes the WSGI callable as a module-level variable named ``application``.
This is the production entry point (gunicorn korx.wsgi).
"""

import os

from django.core.wsgi import get_wsgi_application

# Set the default settings module for the 'korx' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'korx.settings')

application = get_wsgi_application()
