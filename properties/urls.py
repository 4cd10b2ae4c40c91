"""
URL configuration for the properties app.

This URLs file gets included by the main project URLs at /api/.

URL Structure Generated:
========================

Agent listings (authenticated):
- /properties/                          - My listings (GET), create listing (POST)
- /properties/my-properties/            - My listings (GET)
- /properties/{id}/                     - Detail, update, delete (GET, PUT, PATCH, DELETE)
- /properties/{id}/status/              - Status change (PATCH)
- /properties/{id}/availability/        - Sale / rent flags (PUT)
- /properties/{id}/upload/              - Photo upload (POST)
- /properties/{id}/file/                - Photo removal (DELETE)
- /properties/{id}/children/            - Unit creation inside a container (POST)
- /properties/dashboard/stats/          - Agent dashboard counters (GET)
- /properties/search/                   - Search (GET)
- /properties/owner/{person_id}/        - Listings owned by a person (GET)
- /properties/tenant/{person_id}/       - Listings by tenant (GET)

Marketplace (public):
- /public/properties/                   - Listings (GET)
- /public/properties/public/            - Latest active listings (GET)
- /public/properties/user/{user_id}/    - A user's active records (GET)
- /public/properties/available/         - Newest active listings (GET)
- /public/properties/owner/{person_id}/ - Listings owned by a person (GET)
- /public/properties/search/            - Search (GET)
- /public/properties/{id}/              - Listing or container (GET)
- /public/properties/{id}/children/     - Units of a container (GET)
- /public/properties/{id}/nearby/       - Nearby places (GET)

Containers:
- /parents/                             - Create container (POST)
- /parents/{id}/                        - Detail (public), update, delete
- /parents/{id}/children/               - Units (GET, public), create unit (POST)
- /agent/parents/?category=             - My containers of a category (GET)
- /home/containers/                     - Home screen reels (GET, public)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    ContainerViewSet,
    PropertyViewSet,
    PublicPropertyViewSet,
    agent_containers,
    home_containers,
)


# =============================================================================
# ROUTER CONFIGURATION
# =============================================================================

router = DefaultRouter()
router.register(r'properties', PropertyViewSet, basename='property')
router.register(r'public/properties', PublicPropertyViewSet, basename='public-property')
router.register(r'parents', ContainerViewSet, basename='container')


# =============================================================================
# MAIN URL PATTERNS
# =============================================================================

app_name = 'properties'

urlpatterns = [
    path('agent/parents/', agent_containers, name='agent-containers'),
    path('home/containers/', home_containers, name='home-containers'),
    path('', include(router.urls)),
]
