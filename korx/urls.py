"""
URL configuration for the korx project.

Every REST endpoint lives under /api/. Several app routers are mounted
at the same /api/ prefix, so the exact-match info view is listed first.
"""

import logging
import sys

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.urls import include, path, re_path
from django.utils import timezone
from django.views.decorators.cache import cache_control
from django.views.decorators.http import require_http_methods
from django.views.static import serve

logger = logging.getLogger(__name__)


# =============================================================================
# HEALTH CHECK ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
@cache_control(no_cache=True, must_revalidate=True, no_store=True)
def health_check(request):
    """
    Health check endpoint for deployment monitoring.

    Returns:
        JSON response with system status and database connectivity
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.error(f"Health check failed: {e}")
        return JsonResponse({
            "status": "unhealthy",
            "database": "error",
            "error": str(e) if settings.DEBUG else "Database connection failed",
        }, status=503)

    return JsonResponse({
        "status": "healthy",
        "database": "connected",
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        "timestamp": timezone.now().isoformat(),
    })


# =============================================================================
# API INFO ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
def api_info(request):
    """API name, version and a map of the main endpoint groups."""
    return JsonResponse({
        "api_name": "KorX API",
        "version": "1.0",
        "description": "Property management backend: listings, containers, people and deals",
        "endpoints": {
            "auth": "/api/auth/",
            "admin": "/api/admin/",
            "public_users": "/api/public/users/",
            "locations": "/api/locations/",
            "persons": "/api/persons/",
            "profile": "/api/profile/",
            "properties": "/api/properties/",
            "public_properties": "/api/public/properties/",
            "parents": "/api/parents/",
            "agent_parents": "/api/agent/parents/",
            "home_containers": "/api/home/containers/",
            "deals": "/api/deals/",
            "health": "/api/health/",
        },
    })


# =============================================================================
# MAIN URL PATTERNS
# =============================================================================

urlpatterns = [
    # Django Admin Interface
    path('admin/', admin.site.urls),

    # Health and System Status
    path('api/health/', health_check, name='health-check'),
    path('api/', api_info, name='api-info'),

    # Application Endpoints
    path('api/auth/', include('accounts.urls')),
    path('api/admin/', include('accounts.urls_admin')),
    path('api/public/users/', include('accounts.urls_public')),
    path('api/locations/', include('locations.urls')),
    path('api/', include('people.urls')),
    path('api/', include('properties.urls')),
    path('api/', include('deals.urls')),

    # Uploaded files (photos, id cards, avatars)
    re_path(
        r'^%s(?P<path>.*)$' % settings.MEDIA_URL.lstrip('/'),
        serve,
        {'document_root': settings.MEDIA_ROOT},
        name='uploads',
    ),
]


# =============================================================================
# CUSTOM ERROR HANDLERS
# =============================================================================

def custom_404_handler(request, exception):
    """Custom 404 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'error': 'API endpoint not found',
            'message': f'The requested endpoint {request.path} does not exist',
        }, status=404)

    from django.views.defaults import page_not_found
    return page_not_found(request, exception)


def custom_500_handler(request):
    """Custom 500 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'error': 'Internal server error',
            'message': 'An unexpected error occurred',
        }, status=500)

    from django.views.defaults import server_error
    return server_error(request)


handler404 = custom_404_handler
handler500 = custom_500_handler
