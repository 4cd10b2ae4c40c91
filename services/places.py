# services/places.py
"""
Google Places nearby-search client for the KorX backend.

Looks up landmarks (mosques, schools, markets, squares, hospitals) around a
coordinate and returns the closest few per category with their distance.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings

from . import PlacesServiceError

logger = logging.getLogger(__name__)


# Category shown in the app → Google place type
PLACE_TYPE_MAPPING = {
    'mosque': 'mosque',
    'school': 'school',
    'market': 'supermarket',
    'square': 'intersection',
    'hospital': 'hospital',
}

NEARBY_CATEGORIES = list(PLACE_TYPE_MAPPING.keys())

PLACES_PER_CATEGORY = 4
EARTH_RADIUS_M = 6371e3

UNAVAILABLE_MESSAGE = 'Nearby places feature is not available yet. We will provide this feature soon.'


@dataclass
class NearbyPlace:
    """A single place returned for a category."""
    place_id: Optional[str]
    name: str
    lat: float
    lng: float
    distance_m: int
    category: str


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """Great-circle distance between two points, rounded to whole metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_M * c)


class PlacesService:
    """
    Service for nearby-search requests against the Google Places API.

    One request is made per category. A failing category yields an empty
    list instead of failing the whole lookup.
    """

    base_url = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        # Resolved lazily so settings overrides apply
        if self._api_key is not None:
            return self._api_key
        return getattr(settings, 'GOOGLE_MAPS_API_KEY', '') or ''

    def search_category(self, latitude: float, longitude: float,
                        radius_m: int, category: str) -> List[Dict[str, Any]]:
        """
        Return up to four places of ``category`` sorted by distance.

        Raises:
            PlacesServiceError: on network errors or malformed responses
        """
        params = {
            'location': f"{latitude},{longitude}",
            'radius': radius_m,
            'type': PLACE_TYPE_MAPPING[category],
            'key': self.api_key,
        }

        try:
            response = requests.get(self.base_url, params=params, timeout=10)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise PlacesServiceError(f"Network error fetching {category}: {e}") from e
        except ValueError as e:
            raise PlacesServiceError(f"Invalid JSON fetching {category}: {e}") from e

        if data.get('status') != 'OK' or not data.get('results'):
            logger.info(f"Places search for {category} returned status {data.get('status')}")
            return []

        try:
            places = [
                NearbyPlace(
                    place_id=result.get('place_id'),
                    name=result.get('name', ''),
                    lat=float(result['geometry']['location']['lat']),
                    lng=float(result['geometry']['location']['lng']),
                    distance_m=haversine_distance_m(
                        latitude,
                        longitude,
                        float(result['geometry']['location']['lat']),
                        float(result['geometry']['location']['lng']),
                    ),
                    category=category,
                )
                for result in data['results'][:PLACES_PER_CATEGORY]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise PlacesServiceError(f"Error parsing {category} results: {e}") from e

        places.sort(key=lambda place: place.distance_m)
        return [asdict(place) for place in places]

    def search_nearby(self, latitude: float, longitude: float, radius_m: int = 1000) -> Dict[str, Any]:
        """
        Search every category around a coordinate.

        Returns:
            {available, categories} or, without an API key,
            {available: False, message, categories: {}}
        """
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY not configured - nearby places unavailable")
            return {
                'available': False,
                'message': UNAVAILABLE_MESSAGE,
                'categories': {},
            }

        categories = {}
        for category in NEARBY_CATEGORIES:
            try:
                categories[category] = self.search_category(latitude, longitude, radius_m, category)
            except PlacesServiceError as e:
                logger.error(str(e))
                categories[category] = []

        return {
            'available': True,
            'categories': categories,
        }


# Singleton instance
places_service = PlacesService()


def search_nearby_places(latitude: float, longitude: float, radius_m: int = 1000) -> Dict[str, Any]:
    """Module-level shortcut to the singleton places service."""
    return places_service.search_nearby(latitude, longitude, radius_m)
