"""
ASGI config for the korx project.

It exposes the ASGI callable as a module-level variable named ``application``.
The API has no websocket routes, so the plain Django ASGI handler is served.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'korx.settings')

application = get_asgi_application()
