"""
Admin dashboard API (/api/admin/).

Endpoints:
- stats/                               platform counters (any signed-in user)
- users/                               paginated users with listing / deal statistics
- users/{id}/                          delete a user
- users/{id}/role/                     change a user's role
- users/{id}/permissions/              read / replace feature keys
- users/{id}/container-limits/         read / replace container caps
- properties/                          paginated listings with admin filters
- deals/                               paginated deals with admin filters
- permissions/                         every feature key with its label

Every endpoint except stats/ requires the admin role.
"""

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, DecimalField, IntegerField, OuterRef, Q, Subquery, Sum, Value
from django.db.models.functions import Coalesce
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from deals.filters import AdminDealFilter
from deals.models import Deal
from deals.serializers import DealSerializer
from korx.pagination import admin_pagination
from korx.responses import message_response
from properties.filters import AdminPropertyFilter
from properties.models import Property
from properties.serializers import PropertySerializer

from .filters import AdminUserFilter
from .models import CONTAINER_TYPE_CHOICES, ROLE_AGENT, AgentContainerLimit, UserPermission
from .permissions import ALL_PERMISSIONS, IsAdminRole, available_permissions
from .serializers import AdminUserSerializer, RecentUserSerializer, RoleUpdateSerializer, UserSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

CONTAINER_TYPES = [value for value, _ in CONTAINER_TYPE_CHOICES]
RECENT_LIMIT = 5

ADMIN_PERMISSIONS = [IsAuthenticated, IsAdminRole]


def user_not_found():
    return message_response('User not found', status.HTTP_404_NOT_FOUND)


# =============================================================================
# DASHBOARD STATS
# =============================================================================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Platform-wide counters plus the newest listings and users."""
    listings = Property.objects.listings()
    deal_counts = Deal.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
        completed=Count('id', filter=Q(status='completed')),
        canceled=Count('id', filter=Q(status='canceled')),
    )
    recent_properties = listings.with_related().with_unit_counts()[:RECENT_LIMIT]
    recent_users = User.objects.order_by('-date_joined')[:RECENT_LIMIT]

    return Response({
        'totalUsers': User.objects.count(),
        'totalAgents': User.objects.filter(role=ROLE_AGENT).count(),
        'totalProperties': listings.count(),
        'totalActiveListings': listings.active().count(),
        'totalDeals': deal_counts['total'],
        'activeDeals': deal_counts['active'],
        'completedDeals': deal_counts['completed'],
        'canceledDeals': deal_counts['canceled'],
        'propertiesForSale': listings.filter(is_available_for_sale=True).count(),
        'propertiesForRent': listings.filter(is_available_for_rent=True).count(),
        'recentProperties': PropertySerializer(recent_properties, many=True).data,
        'recentUsers': RecentUserSerializer(recent_users, many=True).data,
    })


# =============================================================================
# USERS
# =============================================================================

class AdminUserListView(generics.ListAPIView):
    """
    Users with their listing count, deal count and completed deal volume.

    Query: page, limit, role, search, is_active, id
    """

    serializer_class = AdminUserSerializer
    permission_classes = ADMIN_PERMISSIONS
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminUserFilter
    pagination_class = admin_pagination('users')

    def get_queryset(self):
        listing_count = (
            Property.objects.listings()
            .filter(agent=OuterRef('pk'))
            .order_by()
            .values('agent')
            .annotate(total=Count('id'))
            .values('total')
        )
        deal_count = (
            Deal.objects.filter(agent=OuterRef('pk'))
            .order_by()
            .values('agent')
            .annotate(total=Count('id'))
            .values('total')
        )
        completed_volume = (
            Deal.objects.filter(agent=OuterRef('pk'), status='completed')
            .order_by()
            .values('agent')
            .annotate(total=Sum('price'))
            .values('total')
        )
        money = DecimalField(max_digits=18, decimal_places=2)

        return (
            User.objects.order_by('-date_joined')
            .annotate(
                property_count=Coalesce(Subquery(listing_count, output_field=IntegerField()), 0),
                deal_count=Coalesce(Subquery(deal_count, output_field=IntegerField()), 0),
                total_volume=Coalesce(
                    Subquery(completed_volume, output_field=money),
                    Value(Decimal('0.00')),
                    output_field=money
                ),
            )
            .prefetch_related('app_permissions')
        )


@api_view(['DELETE'])
@permission_classes(ADMIN_PERMISSIONS)
def delete_user(request, pk):
    user = User.objects.filter(pk=pk).first()
    if user is None:
        return user_not_found()
    if user.pk == request.user.pk:
        return message_response('You cannot delete your own account', status.HTTP_400_BAD_REQUEST)

    user.delete()
    logger.info(f"User {pk} deleted by admin {request.user.id}")
    return message_response('User deleted successfully')


@api_view(['PUT'])
@permission_classes(ADMIN_PERMISSIONS)
def update_role(request, pk):
    serializer = RoleUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return message_response('Invalid role', status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(pk=pk).first()
    if user is None:
        return user_not_found()

    user.role = serializer.validated_data['role']
    user.save(update_fields=['role', 'updated_at'])
    logger.info(f"User {user.id} role set to {user.role} by admin {request.user.id}")
    return message_response('User role updated successfully', user=UserSerializer(user).data)


# =============================================================================
# PERMISSIONS
# =============================================================================

@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def permission_catalog(request):
    return Response({'permissions': available_permissions()})


@api_view(['GET', 'PUT'])
@permission_classes(ADMIN_PERMISSIONS)
def user_permissions(request, pk):
    """
    GET: the user's keys and every available key.
    PUT {permissions: [...]}: replace the user's keys.
    """
    if request.method == 'GET':
        user = User.objects.filter(pk=pk).first()
        if user is None:
            return user_not_found()
        return Response({
            'user_id': user.id,
            'role': user.role,
            'permissions': user.get_permission_keys(),
            'availablePermissions': ALL_PERMISSIONS,
        })

    keys = request.data.get('permissions')
    if not isinstance(keys, list):
        return message_response('Permissions must be an array', status.HTTP_400_BAD_REQUEST)

    invalid = [key for key in keys if key not in ALL_PERMISSIONS]
    if invalid:
        return message_response('Invalid permissions detected', status.HTTP_400_BAD_REQUEST, invalid=invalid)

    user = User.objects.filter(pk=pk).first()
    if user is None:
        return user_not_found()
    if user.is_admin_role:
        return message_response('Cannot modify permissions for admin users', status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        user.app_permissions.all().delete()
        UserPermission.objects.bulk_create([
            UserPermission(user=user, permission_key=key) for key in dict.fromkeys(keys)
        ])

    logger.info(f"Permissions for user {user.id} set to {keys} by admin {request.user.id}")
    return message_response('Permissions updated successfully', permissions=user.get_permission_keys())


# =============================================================================
# CONTAINER LIMITS
# =============================================================================

def current_limits(user):
    limits = {container_type: None for container_type in CONTAINER_TYPES}
    for limit in user.container_limits.all():
        limits[limit.container_type] = limit.max_count
    return limits


def parse_limit(value):
    """Return (ok, max_count) for one submitted limit value."""
    if value is None:
        return True, None
    if isinstance(value, bool):
        return False, None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value >= 1:
        return True, value
    return False, None


@api_view(['GET', 'PUT'])
@permission_classes(ADMIN_PERMISSIONS)
def container_limits(request, pk):
    """
    GET: {limits: {tower, market, sharak}} where null means unlimited.
    PUT {limits: {...}}: set or clear caps; null removes the cap.
    """
    user = User.objects.filter(pk=pk).first()
    if user is None:
        return user_not_found()

    if request.method == 'GET':
        return Response({'user_id': user.id, 'limits': current_limits(user)})

    submitted = request.data.get('limits')
    if not isinstance(submitted, dict):
        return message_response('limits must be an object', status.HTTP_400_BAD_REQUEST)

    parsed = {}
    for container_type, value in submitted.items():
        if container_type not in CONTAINER_TYPES:
            return message_response(f'Invalid container type: {container_type}', status.HTTP_400_BAD_REQUEST)
        ok, max_count = parse_limit(value)
        if not ok:
            return message_response(
                f'Invalid limit for {container_type}. Use null or an integer of at least 1',
                status.HTTP_400_BAD_REQUEST
            )
        parsed[container_type] = max_count

    with transaction.atomic():
        for container_type, max_count in parsed.items():
            if max_count is None:
                AgentContainerLimit.objects.filter(user=user, container_type=container_type).delete()
            else:
                AgentContainerLimit.objects.update_or_create(
                    user=user,
                    container_type=container_type,
                    defaults={'max_count': max_count},
                )

    logger.info(f"Container limits for user {user.id} updated by admin {request.user.id}: {parsed}")
    return message_response('Container limits updated successfully', limits=current_limits(user))


# =============================================================================
# PROPERTIES AND DEALS
# =============================================================================

class AdminPropertyListView(generics.ListAPIView):
    """Every listing, filtered and paginated for the admin screen."""

    serializer_class = PropertySerializer
    permission_classes = ADMIN_PERMISSIONS
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminPropertyFilter
    pagination_class = admin_pagination('properties')

    def get_queryset(self):
        return Property.objects.listings().with_related().with_unit_counts().order_by('-created_at', '-id')


class AdminDealListView(generics.ListAPIView):
    serializer_class = DealSerializer
    permission_classes = ADMIN_PERMISSIONS
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminDealFilter
    pagination_class = admin_pagination('deals')

    def get_queryset(self):
        return Deal.objects.select_related('property', 'seller', 'buyer', 'agent').order_by('-created_at', '-id')
