"""
Feature permissions and DRF permission classes.

Agents are granted feature keys by an administrator. Each key unlocks one
area of the mobile app; admins implicitly hold every key.

Usage in a view:

    permission_classes = [IsAuthenticated, require_permissions(ADD_PROPERTY)]

or inline, when the key depends on request data:

    denied = check_permissions(request.user, MY_TOWERS)
    if denied:
        return denied
"""

import logging

from rest_framework import permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

logger = logging.getLogger(__name__)


# =============================================================================
# PERMISSION KEYS
# =============================================================================

ADD_PROPERTY = 'ADD_PROPERTY'
MY_PROPERTIES = 'MY_PROPERTIES'
MY_TOWERS = 'MY_TOWERS'
MY_MARKETS = 'MY_MARKETS'
MY_SHARAKS = 'MY_SHARAKS'
TRANSACTION_HISTORY = 'TRANSACTION_HISTORY'

ALL_PERMISSIONS = [
    ADD_PROPERTY,
    MY_PROPERTIES,
    MY_TOWERS,
    MY_MARKETS,
    MY_SHARAKS,
    TRANSACTION_HISTORY,
]

PERMISSION_DISPLAY_NAMES = {
    ADD_PROPERTY: 'Add Property',
    MY_PROPERTIES: 'My Properties',
    MY_TOWERS: 'My Towers',
    MY_MARKETS: 'My Markets',
    MY_SHARAKS: 'My Sharaks',
    TRANSACTION_HISTORY: 'Transaction History',
}

PERMISSION_DESCRIPTIONS = {
    ADD_PROPERTY: 'Create standalone listings and units inside containers',
    MY_PROPERTIES: 'View and manage own listings',
    MY_TOWERS: 'Create and manage towers',
    MY_MARKETS: 'Create and manage markets',
    MY_SHARAKS: 'Create and manage sharaks',
    TRANSACTION_HISTORY: 'Record and view deals',
}

# Category → action → required key
CATEGORY_PERMISSIONS = {
    'normal': {'create': ADD_PROPERTY, 'read': MY_PROPERTIES,
               'update': MY_PROPERTIES, 'delete': MY_PROPERTIES},
    'tower': {'parent_create': MY_TOWERS, 'parent_read': MY_TOWERS, 'child_create': ADD_PROPERTY},
    'market': {'parent_create': MY_MARKETS, 'parent_read': MY_MARKETS, 'child_create': ADD_PROPERTY},
    'sharak': {'parent_create': MY_SHARAKS, 'parent_read': MY_SHARAKS, 'child_create': ADD_PROPERTY},
}

CONTAINER_READ_PERMISSIONS = [MY_TOWERS, MY_MARKETS, MY_SHARAKS]

AGENT_ROLE_REQUIRED = 'Access denied. Agent role required for this action.'
MISSING_PERMISSION = 'Access denied. You do not have permission for this action.'


def category_permission(category, action):
    """Return the key guarding ``action`` on ``category``, or None."""
    return CATEGORY_PERMISSIONS.get(category, {}).get(action)


def available_permissions():
    """Describe every key for the admin permission editor."""
    return [
        {
            'key': key,
            'label': PERMISSION_DISPLAY_NAMES[key],
            'description': PERMISSION_DESCRIPTIONS[key],
        }
        for key in ALL_PERMISSIONS
    ]


# =============================================================================
# PERMISSION CHECKS
# =============================================================================


def permission_failure(user, *keys):
    """
    Return the denial payload for ``user`` or None when access is granted.

    Admins always pass, non-agents are always refused, agents pass when
    they hold any one of ``keys``.
    """
    if user.is_admin_role:
        return None
    if not user.is_agent_role:
        return {'message': AGENT_ROLE_REQUIRED}
    if user.has_app_permission(*keys):
        return None
    return {'message': MISSING_PERMISSION, 'required': list(keys)}


def check_permissions(user, *keys):
    """Inline variant of :func:`require_permissions` for views."""
    failure = permission_failure(user, *keys)
    if failure is None:
        return None
    logger.info(f"Permission denied for user {user.id}: requires {', '.join(keys)}")
    return Response(failure, status=status.HTTP_403_FORBIDDEN)


# =============================================================================
# DRF PERMISSION CLASSES
# =============================================================================


class IsAdminRole(permissions.BasePermission):
    """Allow only users whose platform role is admin."""

    message = 'Access denied. Admin role required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_role)


class HasAppPermission(permissions.BasePermission):
    """
    Require any one of ``required_permissions``.

    The 403 body carries the message and, for agents, the missing keys.
    """

    required_permissions = ()

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        failure = permission_failure(user, *self.required_permissions)
        if failure is not None:
            raise PermissionDenied(detail=failure)
        return True


def require_permissions(*keys):
    """Build a HasAppPermission subclass bound to ``keys``."""
    return type('RequiresPermission', (HasAppPermission,), {'required_permissions': keys})
