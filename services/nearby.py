"""
Cached nearby-places lookups.

Child units share their container's location, so their lookups are cached
under the container. Everything else is cached under its own id.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from properties.models import NearbyCache

from .places import NEARBY_CATEGORIES, search_nearby_places

logger = logging.getLogger(__name__)

ENTITY_PARENT_CONTAINER = 'PARENT_CONTAINER'
ENTITY_PROPERTY = 'PROPERTY'


def resolve_source(prop):
    """
    Return ``(entity_type, entity_id, latitude, longitude)`` for a property.

    A child unit resolves to its parent container.
    """
    if prop.parent_id:
        parent = prop.parent
        return ENTITY_PARENT_CONTAINER, parent.id, parent.latitude, parent.longitude
    return ENTITY_PROPERTY, prop.id, prop.latitude, prop.longitude


def get_nearby_for_property(prop):
    """
    Return nearby places for ``prop``, served from cache while it is fresh.

    The response always names the entity whose coordinates were used.
    """
    entity_type, entity_id, latitude, longitude = resolve_source(prop)
    source_entity = {'entity_type': entity_type, 'entity_id': entity_id}

    if latitude is None or longitude is None:
        return {
            'available': False,
            'message': 'Location not set for this property',
            'sourceEntity': source_entity,
            'categories': {},
        }

    cache = NearbyCache.objects.filter(entity_type=entity_type, entity_id=entity_id).first()
    now = timezone.now()

    if cache and cache.expires_at > now:
        logger.debug(f"Returning cached nearby places for {entity_type}:{entity_id}")
        data = cache.data_json or {}
        return {
            'available': data.get('available') is not False,
            'message': data.get('message'),
            'sourceEntity': source_entity,
            'radius_m': cache.radius_m,
            'categories': data.get('categories') or {},
            'updated_at': cache.updated_at,
            'cached': True,
        }

    radius_m = settings.NEARBY_RADIUS_M
    logger.info(f"Fetching nearby places for {entity_type}:{entity_id}")
    result = search_nearby_places(float(latitude), float(longitude), radius_m)

    cache, _ = NearbyCache.objects.update_or_create(
        entity_type=entity_type,
        entity_id=entity_id,
        defaults={
            'radius_m': radius_m,
            'types': list(NEARBY_CATEGORIES),
            'data_json': {
                'available': result['available'],
                'message': result.get('message'),
                'categories': result['categories'],
            },
            'expires_at': now + timedelta(days=settings.NEARBY_TTL_DAYS),
        },
    )

    return {
        'available': result['available'],
        'message': result.get('message'),
        'sourceEntity': source_entity,
        'radius_m': radius_m,
        'categories': result['categories'],
        'updated_at': cache.updated_at,
        'cached': False,
    }


def purge_expired():
    """Delete expired cache rows and return how many were removed."""
    deleted, _ = NearbyCache.objects.filter(expires_at__lte=timezone.now()).delete()
    return deleted
