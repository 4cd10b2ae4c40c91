"""
Business Logic Services for the KorX platform.

This module implements the rules behind the property hierarchy:

- Category normalization ("apartment" buildings are towers)
- Container categories and the unit types each one may hold
- Room suppression for non-residential units in towers and markets
- Field derivation for child units created inside a container
- The fixed shape of containers and standalone listings
- Property code formatting ({Owner}{Agent}-KorX-{NNNNNN})
- Lenient input cleaning for form-encoded mobile clients
- Small account helpers (email masking, reset codes)

Everything here is free of database access so it can be unit tested and
reused by views, management commands and the admin.
"""

import json
import logging
import re
import secrets
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from . import BusinessRuleError

logger = logging.getLogger(__name__)


# =============================================================================
# CATEGORY RULES
# =============================================================================

CONTAINER_CATEGORIES = ['tower', 'market', 'sharak']

ALLOWED_UNIT_TYPES = {
    'tower': ['apartment', 'shop', 'office'],
    'market': ['shop', 'office'],
    'sharak': ['apartment', 'shop', 'office', 'land', 'house'],
}

# Categories whose non-apartment units never carry room counts
ROOMLESS_CATEGORIES = {'tower', 'market'}

# Location fields a child unit copies from its container
INHERITED_LOCATION_FIELDS = [
    'province_id',
    'district_id',
    'area_id',
    'address',
    'latitude',
    'longitude',
    'city',
]

PROPERTY_CODE_BRAND = 'KorX'
PROPERTY_CODE_PATTERN = re.compile(r'(\d+)$')
PROPERTY_CODE_DIGITS = 6


def normalize_category(category: Optional[str]) -> str:
    """
    Lower-case and trim a category, folding "apartment" into "tower".

    Examples:
        >>> normalize_category('  Apartment ')
        'tower'
        >>> normalize_category(None)
        ''
    """
    normalized = (category or '').strip().lower()
    if normalized == 'apartment':
        return 'tower'
    return normalized


def validate_container_category(category: Optional[str]) -> str:
    """
    Normalize ``category`` and make sure it names a container.

    Raises:
        BusinessRuleError: 400 when the category is not tower, market or sharak
    """
    normalized = normalize_category(category)
    if normalized not in CONTAINER_CATEGORIES:
        raise BusinessRuleError(
            f"Invalid parent category. Must be one of: {', '.join(CONTAINER_CATEGORIES)}"
        )
    return normalized


def allowed_unit_types(category: str) -> List[str]:
    return ALLOWED_UNIT_TYPES.get(normalize_category(category), [])


def validate_unit_type(category: str, unit_type: Optional[str]) -> str:
    """
    Check that a container of ``category`` may hold a unit of ``unit_type``.

    Returns the lower-cased unit type.

    Raises:
        BusinessRuleError: 400 listing the allowed types
    """
    normalized_category = validate_container_category(category)
    unit = (unit_type or '').strip().lower()
    allowed = ALLOWED_UNIT_TYPES[normalized_category]
    if unit not in allowed:
        raise BusinessRuleError(
            f"Invalid unit type for {normalized_category}. Allowed: {', '.join(allowed)}"
        )
    return unit


def suppresses_rooms(category: str, unit_type: Optional[str]) -> bool:
    """Towers and markets drop bedroom/bathroom counts for non-apartments."""
    return (
        normalize_category(category) in ROOMLESS_CATEGORIES
        and (unit_type or '').strip().lower() != 'apartment'
    )


def apply_room_rules(category: str, unit_type: Optional[str], values: Dict[str, Any]) -> Dict[str, Any]:
    """Null the room counts in ``values`` when the unit cannot have rooms."""
    if suppresses_rooms(category, unit_type):
        values['bedrooms'] = None
        values['bathrooms'] = None
    return values


# =============================================================================
# RECORD SHAPES
# =============================================================================

@dataclass
class ContainerPlan:
    """Normalized values that define a container record."""
    category: str
    details: Dict[str, Any] = field(default_factory=dict)
    planned_units: Optional[int] = None
    total_floors: Optional[int] = None

    def as_fields(self) -> Dict[str, Any]:
        return {
            'property_category': self.category,
            'property_type': self.category,
            'record_kind': 'container',
            'is_parent': True,
            'parent': None,
            'status': 'active',
            'purpose': None,
            'sale_price': None,
            'rent_price': None,
            'details': self.details,
            'total_units': self.planned_units,
            'total_floors': self.total_floors,
        }


def plan_container(category: Optional[str], details: Any = None,
                   planned_units: Any = None, total_floors: Any = None) -> ContainerPlan:
    """
    Validate and normalize the defining values of a new container.

    ``planned_units`` is merged into ``details`` and mirrored in ``total_units``.
    """
    normalized = validate_container_category(category)
    details_dict = parse_json_value(details)
    if not isinstance(details_dict, dict):
        details_dict = {}

    units = sanitize_int(planned_units)
    floors = sanitize_int(total_floors)
    if units:
        details_dict['planned_units'] = units

    return ContainerPlan(
        category=normalized,
        details=details_dict,
        planned_units=units,
        total_floors=floors,
    )


def merge_container_details(details: Any, planned_units: Any = None,
                            total_floors: Any = None) -> Dict[str, Any]:
    """Merge updated planned_units / total_floors into an existing details dict."""
    merged = dict(details) if isinstance(details, dict) else {}
    if planned_units is not None:
        merged['planned_units'] = planned_units
    if total_floors is not None:
        merged['total_floors'] = total_floors
    return merged


def standalone_listing_fields() -> Dict[str, Any]:
    """Fixed values every standalone listing is created with."""
    return {
        'property_category': 'normal',
        'record_kind': 'listing',
        'is_parent': False,
        'parent': None,
        'status': 'active',
    }


def derive_child_fields(parent, unit_type: Optional[str], values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the field values of a unit created inside ``parent``.

    The unit inherits the container's normalized category and location,
    and its facilities unless ``values`` brings its own. Room counts are
    suppressed where the container type requires it.

    Raises:
        BusinessRuleError: when the container category or unit type is invalid
    """
    category = validate_container_category(parent.property_category)
    unit = validate_unit_type(category, unit_type)

    derived = dict(values)
    derived.update({
        'parent': parent,
        'property_category': category,
        'record_kind': 'listing',
        'is_parent': False,
        'property_type': unit,
        'status': 'active',
        'purpose': values.get('purpose') or 'sale',
        'area_size': values.get('area_size') or '0',
    })

    for field_name in INHERITED_LOCATION_FIELDS:
        derived[field_name] = getattr(parent, field_name)

    if values.get('facilities') is None:
        derived['facilities'] = parent.facilities

    return apply_room_rules(category, unit, derived)


# =============================================================================
# PROPERTY CODES
# =============================================================================

def name_initial(name: Optional[str]) -> str:
    """Upper-cased first letter of a name, or ``X`` when missing."""
    stripped = (name or '').strip()
    return stripped[0].upper() if stripped else 'X'


def next_code_sequence(latest_code: Optional[str]) -> int:
    """Sequence number that follows ``latest_code`` (1 when there is none)."""
    if not latest_code:
        return 1
    match = PROPERTY_CODE_PATTERN.search(latest_code)
    if not match:
        return 1
    return int(match.group(1)) + 1


def format_property_code(owner_name: Optional[str], agent_name: Optional[str], sequence: int) -> str:
    """
    Format a property code.

    Examples:
        >>> format_property_code('Ahmad', 'zarif', 42)
        'AZ-KorX-000042'
    """
    prefix = f"{name_initial(owner_name)}{name_initial(agent_name)}"
    return f"{prefix}-{PROPERTY_CODE_BRAND}-{str(sequence).zfill(PROPERTY_CODE_DIGITS)}"


# =============================================================================
# LENIENT INPUT CLEANING
# =============================================================================

NULL_STRINGS = {'', 'null', 'undefined'}
LEADING_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')


def sanitize_int(value: Any) -> Optional[int]:
    """
    Coerce loosely typed integer input.

    ``''``, ``'null'``, ``'undefined'`` and non-numeric text become None.
    Leading digits win, so ``'12 floors'`` becomes 12.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    text = str(value)
    if text.strip() in NULL_STRINGS:
        return None
    match = LEADING_INT_PATTERN.match(text)
    if not match:
        return None
    return int(match.group(1))


def sanitize_decimal(value: Any, decimal_places: int = 2) -> Optional[Decimal]:
    """Coerce loosely typed decimal input; blanks and garbage become None."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if text in NULL_STRINGS:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def parse_json_value(value: Any) -> Any:
    """Decode JSON sent as a string; undecodable strings become None."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        logger.debug(f"Discarding unparseable JSON input: {value[:50]!r}")
        return None


def parse_bool(value: Any) -> bool:
    """Interpret checkbox-style values sent as JSON or form data."""
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'on'}
    return bool(value)


# =============================================================================
# ACCOUNT HELPERS
# =============================================================================

def mask_email(email: Optional[str]) -> str:
    """
    Hide most of an email's local part.

    Examples:
        >>> mask_email('ahmad@example.com')
        'ah••••d@example.com'
        >>> mask_email('ab@example.com')
        '**@example.com'
    """
    if not email:
        return ''
    local, _, domain = email.partition('@')
    if len(local) <= 2:
        return f"**@{domain}"
    return f"{local[:2]}••••{local[-1]}@{domain}"


def generate_otp_code() -> str:
    """Random six digit code in the range 100000-999999."""
    return str(100000 + secrets.randbelow(900000))
