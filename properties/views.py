"""
Views for the properties app.

This module defines the API for the property hierarchy:
- PropertyViewSet: an agent's own listings (/api/properties/)
- PublicPropertyViewSet: marketplace reads (/api/public/properties/)
- ContainerViewSet: towers, markets and sharaks (/api/parents/)
- agent_containers / home_containers: container lists for the app screens

Hierarchy rules (allowed unit types, inherited fields, container shape)
come from services.business_logic; this module only applies them.
"""

import logging

from django.db import transaction
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from accounts.models import AgentContainerLimit
from accounts.permissions import (
    CONTAINER_READ_PERMISSIONS,
    MY_PROPERTIES,
    category_permission,
    check_permissions,
)
from deals.models import Deal
from korx.pagination import ListingWindowPagination
from korx.responses import error_response, first_error, message_response
from people.models import Person
from services import BusinessRuleError
from services.business_logic import (
    INHERITED_LOCATION_FIELDS,
    apply_room_rules,
    derive_child_fields,
    merge_container_details,
    normalize_category,
    parse_bool,
    plan_container,
    sanitize_int,
    standalone_listing_fields,
    validate_unit_type,
)
from services.nearby import get_nearby_for_property
from services.uploads import delete_upload, save_upload

from .filters import PropertySearchFilter
from .models import STATUS_CHOICES, Property
from .serializers import HomeContainerSerializer, PropertyInputSerializer, PropertySerializer

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT FIELD SETS
# =============================================================================

LISTING_FIELDS = [
    'title', 'description', 'owner_id', 'owner_name', 'agent_id',
    'property_type', 'purpose', 'sale_price', 'rent_price',
    'province_id', 'district_id', 'area_id', 'address', 'city', 'latitude', 'longitude',
    'area_size', 'bedrooms', 'bathrooms',
    'facilities', 'details', 'photos', 'attachments', 'videos',
    'is_available_for_sale', 'is_available_for_rent',
    'unit_number', 'floor',
]

LISTING_UPDATE_FIELDS = LISTING_FIELDS + ['status']

CHILD_FIELDS = [
    'title', 'description', 'owner_id', 'owner_name', 'agent_id',
    'purpose', 'sale_price', 'rent_price',
    'area_size', 'bedrooms', 'bathrooms',
    'facilities', 'details', 'photos', 'attachments', 'videos',
    'is_available_for_sale', 'is_available_for_rent',
    'unit_number', 'floor',
]

CONTAINER_FIELDS = [
    'title', 'description', 'owner_id', 'owner_name', 'agent_id',
    'province_id', 'district_id', 'area_id', 'address', 'city', 'latitude', 'longitude',
    'facilities', 'photos', 'attachments', 'videos',
]

CONTAINER_UPDATE_FIELDS = CONTAINER_FIELDS + ['status']

HOME_CATEGORIES = ['tower', 'market', 'sharak', 'apartment']
HOME_CONTAINER_LIMIT = 20
PUBLIC_LATEST_LIMIT = 6
PUBLIC_USER_LIMIT = 100
AVAILABLE_LIMIT = 10


def take_fields(data, names):
    """Subset of validated input limited to ``names``."""
    return {key: value for key, value in data.items() if key in names}


def invalid_input(serializer):
    return error_response(first_error(serializer.errors), errors=serializer.errors)


def rule_error(exc):
    return error_response(exc.message, exc.status_code)


def missing_owner(values):
    """404 when ``owner_id`` names no Person."""
    owner_id = values.get('owner_id')
    if owner_id and not Person.objects.filter(pk=owner_id).exists():
        return error_response('Owner (Person) not found', status.HTTP_404_NOT_FOUND)
    return None


def detailed_properties():
    return Property.objects.with_related().with_unit_counts()


def is_visible_to(prop, user):
    """Active records are public; others only to their managers and admins."""
    if prop.status == 'active':
        return True
    if not user.is_authenticated:
        return False
    return user.is_admin_role or prop.is_managed_by(user)


def window(request, default_limit):
    """Read ``limit``/``offset`` with a fallback limit."""
    limit = sanitize_int(request.query_params.get('limit'))
    offset = sanitize_int(request.query_params.get('offset')) or 0
    limit = limit if limit and limit > 0 else default_limit
    offset = max(offset, 0)
    return offset, offset + limit


# =============================================================================
# SHARED OPERATIONS
# =============================================================================

def search_properties(view, request):
    """
    Marketplace search shared by the protected and public routes.

    Public marketplace rules apply unless a signed-in user filters by
    ``agent_id`` or ``created_by_user_id`` to look at their own records.
    """
    params = request.query_params
    queryset = detailed_properties()

    own_records = request.user.is_authenticated and (
        params.get('agent_id') or params.get('created_by_user_id')
    )
    if not own_records:
        queryset = queryset.active()
        if (params.get('record_kind') or '').strip().lower() != 'container':
            queryset = queryset.available()

    filterset = PropertySearchFilter(params, queryset=queryset, request=request)
    if not filterset.is_valid():
        return error_response('Invalid search parameters', errors=filterset.errors)

    page = view.paginate_queryset(filterset.qs.order_by('-created_at', '-id'))
    return view.get_paginated_response(PropertySerializer(page, many=True).data)


def create_child_unit(request, parent_pk):
    """
    Create a unit inside a container.

    The unit type is checked against the container category before any
    other input, then the unit inherits the container's location.
    """
    parent = Property.objects.filter(pk=parent_pk).first()
    if parent is None or not parent.is_container:
        return error_response('Parent container not found', status.HTTP_404_NOT_FOUND)

    try:
        unit_type = validate_unit_type(parent.property_category, request.data.get('property_type'))
    except BusinessRuleError as e:
        return rule_error(e)

    serializer = PropertyInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)

    values = take_fields(serializer.validated_data, CHILD_FIELDS)
    owner_error = missing_owner(values)
    if owner_error:
        return owner_error
    fields = derive_child_fields(parent, unit_type, values)

    denied = check_permissions(
        request.user, category_permission(fields['property_category'], 'child_create')
    )
    if denied:
        return denied

    child = Property.objects.create(created_by=request.user, **fields)
    logger.info(f"Unit {child.id} ({unit_type}) created in container {parent.id} by user {request.user.id}")

    child = detailed_properties().get(pk=child.pk)
    return Response(
        {
            'message': 'Unit created successfully',
            'property_id': child.id,
            'id': child.id,
            'property': PropertySerializer(child).data,
        },
        status=status.HTTP_201_CREATED
    )


# =============================================================================
# AGENT LISTINGS
# =============================================================================

class PropertyViewSet(viewsets.GenericViewSet):
    """
    API endpoint for the signed-in user's listings.

    Supports:
    - List and create standalone listings
    - Retrieve, partial update and delete a listing
    - Status, availability and photo management
    - Units inside containers (POST /properties/{id}/children/)
    - Dashboard counters, search, and listings by owner
    """

    serializer_class = PropertySerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ListingWindowPagination
    filter_backends = []
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return detailed_properties()

    def get_managed_listing(self, pk):
        """
        Return ``(property, None)`` or ``(None, error_response)``.

        Only managers and admins may change status, availability or files.
        """
        prop = Property.objects.filter(pk=pk).first()
        if prop is None:
            return None, error_response('Property not found', status.HTTP_404_NOT_FOUND)
        user = self.request.user
        if not (user.is_admin_role or prop.is_managed_by(user)):
            return None, error_response('Not authorized to modify this property', status.HTTP_403_FORBIDDEN)
        return prop, None

    def managed_listings(self):
        return self.get_queryset().listings().managed_by(self.request.user)

    # =============================================================================
    # COLLECTION
    # =============================================================================

    def list(self, request, *args, **kwargs):
        denied = check_permissions(request.user, MY_PROPERTIES)
        if denied:
            return denied
        page = self.paginate_queryset(self.managed_listings())
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    @action(detail=False, methods=['get'], url_path='my-properties')
    def my_properties(self, request):
        return self.list(request)

    def create(self, request, *args, **kwargs):
        """Create a standalone listing with a generated property code."""
        user = request.user
        denied = check_permissions(user, category_permission('normal', 'create'))
        if denied:
            return denied

        serializer = PropertyInputSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)
        values = take_fields(serializer.validated_data, LISTING_FIELDS)

        owner = None
        if values.get('owner_id'):
            owner = Person.objects.filter(pk=values['owner_id']).first()
            if owner is None:
                return error_response('Owner (Person) not found', status.HTTP_404_NOT_FOUND)

        if not (values.get('province_id') and values.get('district_id') and values.get('address')):
            return error_response('Province, District, and Address are required for standalone properties')

        code_owner_name = values.get('owner_name') or (owner.full_name if owner else None)
        values.update(standalone_listing_fields())

        with transaction.atomic():
            values['property_code'] = Property.generate_property_code(code_owner_name, user.full_name)
            prop = Property.objects.create(created_by=user, **values)

        logger.info(f"Listing {prop.id} ({prop.property_code}) created by user {user.id}")
        return Response(
            {'message': 'Property created successfully', 'property_id': prop.id, 'id': prop.id},
            status=status.HTTP_201_CREATED
        )

    # =============================================================================
    # SINGLE LISTING
    # =============================================================================

    def retrieve(self, request, *args, **kwargs):
        prop = self.get_queryset().filter(pk=kwargs['pk']).first()
        if prop is None:
            return error_response('Property not found', status.HTTP_404_NOT_FOUND)

        user = request.user
        if not user.is_admin_role and not prop.is_managed_by(user) and prop.status != 'active':
            return error_response('Not authorized to view this property', status.HTTP_403_FORBIDDEN)
        return Response(self.get_serializer(prop).data)

    def update(self, request, *args, **kwargs):
        """
        Partial merge of a listing.

        Units keep their container's location, and tower units other than
        apartments never carry room counts.
        """
        prop = Property.objects.filter(pk=kwargs['pk']).first()
        if prop is None or not prop.is_listing:
            return error_response('Listing not found', status.HTTP_404_NOT_FOUND)
        if not prop.can_edit(request.user):
            return error_response('Not authorized to update this property', status.HTTP_403_FORBIDDEN)

        serializer = PropertyInputSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return invalid_input(serializer)
        values = take_fields(serializer.validated_data, LISTING_UPDATE_FIELDS)
        owner_error = missing_owner(values)
        if owner_error:
            return owner_error

        if prop.is_child_unit:
            for field_name in INHERITED_LOCATION_FIELDS:
                values.pop(field_name, None)
            if prop.property_category == 'tower':
                apply_room_rules('tower', values.get('property_type') or prop.property_type, values)

        for field_name, value in values.items():
            setattr(prop, field_name, value)
        prop.save()

        logger.info(f"Listing {prop.id} updated by user {request.user.id}: {', '.join(values) or 'no changes'}")
        prop = self.get_queryset().get(pk=prop.pk)
        return message_response('Property updated successfully', property=self.get_serializer(prop).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        prop = Property.objects.filter(pk=kwargs['pk']).first()
        if prop is None or not prop.is_listing:
            return error_response('Listing not found', status.HTTP_404_NOT_FOUND)
        if not prop.can_edit(request.user):
            return error_response('Not authorized to delete this property', status.HTTP_403_FORBIDDEN)
        if prop.deals.exists():
            return error_response('Cannot delete property with existing deals')

        prop_id = prop.id
        prop.delete()
        logger.info(f"Listing {prop_id} deleted by user {request.user.id}")
        return message_response('Property deleted successfully')

    # =============================================================================
    # STATUS, AVAILABILITY AND FILES
    # =============================================================================

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        denied = check_permissions(request.user, MY_PROPERTIES)
        if denied:
            return denied
        prop, error = self.get_managed_listing(pk)
        if error:
            return error

        new_status = request.data.get('status')
        if new_status not in dict(STATUS_CHOICES):
            return error_response(
                f"Invalid status. Must be one of: {', '.join(dict(STATUS_CHOICES))}"
            )
        prop.status = new_status
        prop.save(update_fields=['status', 'updated_at'])
        return message_response('Property status updated', status=new_status)

    @action(detail=True, methods=['put'], url_path='availability')
    def availability(self, request, pk=None):
        denied = check_permissions(request.user, MY_PROPERTIES)
        if denied:
            return denied
        prop, error = self.get_managed_listing(pk)
        if error:
            return error

        prop.is_available_for_sale = parse_bool(request.data.get('is_available_for_sale', False))
        prop.is_available_for_rent = parse_bool(request.data.get('is_available_for_rent', False))
        prop.save(update_fields=['is_available_for_sale', 'is_available_for_rent', 'updated_at'])
        return message_response(
            'Property availability updated',
            is_available_for_sale=prop.is_available_for_sale,
            is_available_for_rent=prop.is_available_for_rent,
        )

    @action(detail=True, methods=['post'], url_path='upload')
    def upload(self, request, pk=None):
        prop, error = self.get_managed_listing(pk)
        if error:
            return error

        files = request.FILES.getlist('files')
        if not files:
            return error_response('No files uploaded')

        photos = list(prop.photos) if isinstance(prop.photos, list) else []
        photos.extend(save_upload(uploaded) for uploaded in files)
        prop.photos = photos
        prop.save(update_fields=['photos', 'updated_at'])
        return message_response('Files uploaded successfully', photos=prop.photos)

    @action(detail=True, methods=['delete'], url_path='file')
    def delete_file(self, request, pk=None):
        prop, error = self.get_managed_listing(pk)
        if error:
            return error

        file_url = request.data.get('fileUrl')
        if not file_url:
            return error_response('fileUrl is required')

        photos = prop.photos if isinstance(prop.photos, list) else []
        if file_url in photos:
            prop.photos = [photo for photo in photos if photo != file_url]
            prop.save(update_fields=['photos', 'updated_at'])
            delete_upload(file_url)
        return message_response('File deleted successfully', photos=prop.photos)

    # =============================================================================
    # UNITS, STATS, SEARCH
    # =============================================================================

    @action(detail=True, methods=['post'], url_path='children')
    def children(self, request, pk=None):
        return create_child_unit(request, pk)

    @action(detail=False, methods=['get'], url_path='dashboard/stats')
    def dashboard_stats(self, request):
        user = request.user
        managed = Property.objects.managed_by(user)
        return Response({
            'total_managed': managed.count(),
            'total_listed': Property.objects.filter(created_by=user).count(),
            'public_listings': managed.publicly_listed().count(),
            'active_deals': Deal.objects.filter(agent=user, status='active').count(),
        })

    @action(detail=False, methods=['get'])
    def search(self, request):
        return search_properties(self, request)

    @action(detail=False, methods=['get'], url_path=r'owner/(?P<person_id>\d+)')
    def by_owner(self, request, person_id=None):
        listings = self.get_queryset().listings().filter(owner_id=person_id)
        return Response(self.get_serializer(listings, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'tenant/(?P<person_id>\d+)')
    def by_tenant(self, request, person_id=None):
        # Tenancy is not tracked separately from ownership yet
        return self.by_owner(request, person_id=person_id)


# =============================================================================
# PUBLIC MARKETPLACE
# =============================================================================

class PublicPropertyViewSet(viewsets.GenericViewSet):
    """
    Read-only marketplace endpoints; no authentication required.

    A valid token still identifies the caller, which widens what they see.
    """

    serializer_class = PropertySerializer
    permission_classes = [AllowAny]
    pagination_class = ListingWindowPagination
    filter_backends = []
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return detailed_properties()

    def get_visible(self, pk):
        prop = self.get_queryset().filter(pk=pk).first()
        if prop is None or not is_visible_to(prop, self.request.user):
            return None
        return prop

    def list(self, request, *args, **kwargs):
        listings = self.get_queryset().listings()
        user = request.user
        if not user.is_authenticated:
            listings = listings.active()
        elif not user.is_admin_role:
            listings = listings.managed_by(user)

        page = self.paginate_queryset(listings)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        prop = self.get_visible(kwargs['pk'])
        if prop is None:
            return error_response('Property not found', status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(prop).data)

    @action(detail=False, methods=['get'], url_path='public')
    def latest(self, request):
        start, end = window(request, PUBLIC_LATEST_LIMIT)
        listings = self.get_queryset().listings().active()[start:end]
        return Response(self.get_serializer(listings, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'user/(?P<user_id>\d+)')
    def by_user(self, request, user_id=None):
        start, end = window(request, PUBLIC_USER_LIMIT)
        records = self.get_queryset().active().filter(
            Q(agent_id=user_id) | Q(created_by_id=user_id)
        )
        return Response(self.get_serializer(records[start:end], many=True).data)

    @action(detail=False, methods=['get'])
    def available(self, request):
        listings = self.get_queryset().listings().active()[:AVAILABLE_LIMIT]
        return Response(self.get_serializer(listings, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'owner/(?P<person_id>\d+)')
    def by_owner(self, request, person_id=None):
        listings = self.get_queryset().listings().filter(owner_id=person_id)
        return Response(self.get_serializer(listings, many=True).data)

    @action(detail=False, methods=['get'])
    def search(self, request):
        return search_properties(self, request)

    @action(detail=True, methods=['get'])
    def children(self, request, pk=None):
        units = self.get_queryset().listings().filter(parent_id=pk)
        return Response(self.get_serializer(units, many=True).data)

    @action(detail=True, methods=['get'])
    def nearby(self, request, pk=None):
        prop = self.get_visible(pk)
        if prop is None:
            return error_response('Property not found', status.HTTP_404_NOT_FOUND)
        return Response(get_nearby_for_property(prop))


# =============================================================================
# CONTAINERS
# =============================================================================

class ContainerViewSet(viewsets.GenericViewSet):
    """
    API endpoint for towers, markets and sharaks.

    Reading a container and its units is public; creating and editing
    require authentication plus the category's container permission.
    """

    serializer_class = PropertySerializer
    filter_backends = []
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action == 'retrieve' or (self.action == 'children' and self.request.method == 'GET'):
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return detailed_properties().containers()

    def get_editable(self, pk, verb):
        container = Property.objects.containers().filter(pk=pk).first()
        if container is None:
            return None, error_response('Container not found', status.HTTP_404_NOT_FOUND)
        if not container.can_edit(self.request.user):
            return None, error_response(f'Not authorized to {verb} this container', status.HTTP_403_FORBIDDEN)
        return container, None

    def container_limit_error(self, user, category):
        """403 once an agent has created as many containers as allowed."""
        if not user.is_agent_role:
            return None
        limit = AgentContainerLimit.objects.filter(user=user, container_type=category).first()
        if limit is None or limit.max_count is None:
            return None

        created = Property.objects.containers().filter(created_by=user, property_category=category).count()
        if created < limit.max_count:
            return None
        logger.info(f"User {user.id} reached the {category} container limit ({limit.max_count})")
        return error_response(
            f"Container limit reached. You can create at most {limit.max_count} {category} containers.",
            status.HTTP_403_FORBIDDEN,
            limit=limit.max_count,
            current=created,
        )

    def create(self, request, *args, **kwargs):
        user = request.user
        try:
            category = plan_container(request.data.get('property_category')).category
        except BusinessRuleError as e:
            return rule_error(e)

        denied = check_permissions(user, category_permission(category, 'parent_create'))
        if denied:
            return denied

        limit_error = self.container_limit_error(user, category)
        if limit_error:
            return limit_error

        serializer = PropertyInputSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)
        data = serializer.validated_data

        plan = plan_container(
            category,
            data.get('details'),
            data.get('planned_units'),
            data.get('total_floors'),
        )
        values = take_fields(data, CONTAINER_FIELDS)
        owner_error = missing_owner(values)
        if owner_error:
            return owner_error
        values.update(plan.as_fields())

        container = Property.objects.create(created_by=user, **values)
        logger.info(f"Container {container.id} ({category}) created by user {user.id}")
        return Response(
            {
                'message': 'Parent container created successfully',
                'property_id': container.id,
                'id': container.id,
            },
            status=status.HTTP_201_CREATED
        )

    def retrieve(self, request, *args, **kwargs):
        container = self.get_queryset().filter(pk=kwargs['pk']).first()
        if container is None:
            return error_response('Container not found', status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(container).data)

    def update(self, request, *args, **kwargs):
        """Partial merge; planned units and floors are mirrored into details."""
        container, error = self.get_editable(kwargs['pk'], 'update')
        if error:
            return error

        serializer = PropertyInputSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return invalid_input(serializer)
        data = serializer.validated_data

        values = take_fields(data, CONTAINER_UPDATE_FIELDS)
        owner_error = missing_owner(values)
        if owner_error:
            return owner_error
        planned_units = data.get('planned_units')
        total_floors = data.get('total_floors')
        values['details'] = merge_container_details(
            data['details'] if 'details' in data else container.details,
            planned_units,
            total_floors,
        )
        if planned_units is not None:
            values['total_units'] = planned_units
        if total_floors is not None:
            values['total_floors'] = total_floors

        for field_name, value in values.items():
            setattr(container, field_name, value)
        container.save()

        logger.info(f"Container {container.id} updated by user {request.user.id}")
        return Response(self.get_serializer(self.get_queryset().get(pk=container.pk)).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        container, error = self.get_editable(kwargs['pk'], 'delete')
        if error:
            return error

        if container.children.exists():
            container.status = 'inactive'
            container.save(update_fields=['status', 'updated_at'])
            return message_response('Container marked as inactive because it has units')

        container_id = container.id
        container.delete()
        logger.info(f"Container {container_id} deleted by user {request.user.id}")
        return message_response('Container deleted successfully')

    @action(detail=True, methods=['get', 'post'])
    def children(self, request, pk=None):
        if request.method == 'POST':
            return create_child_unit(request, pk)
        units = detailed_properties().listings().filter(parent_id=pk)
        return Response(self.get_serializer(units, many=True).data)


# =============================================================================
# CONTAINER LISTS
# =============================================================================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def agent_containers(request):
    """
    Containers of one category for the "My Towers / Markets / Sharaks" screens.

    Admins see every container of the category; others see their own.
    """
    category = request.query_params.get('category')
    if not category:
        return error_response('Category is required')

    denied = check_permissions(request.user, *CONTAINER_READ_PERMISSIONS)
    if denied:
        return denied

    containers = detailed_properties().containers().filter(
        property_category=normalize_category(category),
        parent__isnull=True,
    )
    if not request.user.is_admin_role:
        containers = containers.filter(created_by=request.user)
    return Response(PropertySerializer(containers, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def home_containers(request):
    """Newest containers per category for the home screen reels."""
    containers = (
        Property.objects.containers()
        .filter(parent__isnull=True, status__in=['active', 'draft'])
        .select_related('province', 'district')
        .with_offer_counts()
        .order_by('-created_at', '-id')
    )
    return Response({
        f"{category}s": HomeContainerSerializer(
            containers.filter(property_category=category)[:HOME_CONTAINER_LIMIT],
            many=True
        ).data
        for category in HOME_CATEGORIES
    })
