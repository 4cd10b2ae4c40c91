"""
API Serializers for KorX properties.

Implements different serializer classes for different API use cases:
- PropertySerializer: listings, containers and units as returned to clients
- PropertyInputSerializer: lenient create / update input shared by
  listings, containers and child units
- HomeContainerSerializer: container cards for the home screen reels

Key Features:
- Lenient parsing of form-encoded mobile input (blank integers, JSON strings)
- Flattened location names and parent summary for display
- Child unit counts for containers
- ``forSale`` / ``forRent`` aliases expected by the app
"""

import logging

from django.contrib.auth import get_user_model

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from locations.models import Area, District, Province
from people.serializers import PersonBriefSerializer

from services.business_logic import parse_json_value, sanitize_decimal, sanitize_int

from .models import PROPERTY_TYPE_CHOICES, PURPOSE_CHOICES, STATUS_CHOICES, Property

logger = logging.getLogger(__name__)

FALLBACK_CONTAINER_IMAGE = 'https://images.unsplash.com/photo-1564013799919-ab600027ffc6'


# =============================================================================
# LENIENT INPUT FIELDS
# =============================================================================

class LenientIntegerField(serializers.Field):
    """Integer input where blanks, "null", "undefined" and garbage become None."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return sanitize_int(data)

    def to_representation(self, value):
        return value


class LenientDecimalField(serializers.Field):
    """Decimal input where blanks and garbage become None."""

    def __init__(self, decimal_places=2, **kwargs):
        self.decimal_places = decimal_places
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return sanitize_decimal(data, self.decimal_places)

    def to_representation(self, value):
        return str(value) if value is not None else None


class LenientJSONField(serializers.Field):
    """JSON value that may arrive as an encoded string; bad JSON becomes None."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return parse_json_value(data)

    def to_representation(self, value):
        return value


def optional_text(max_length=None):
    return serializers.CharField(
        max_length=max_length,
        required=False,
        allow_blank=True,
        allow_null=True
    )


# =============================================================================
# INPUT SERIALIZER
# =============================================================================

class PropertyInputSerializer(serializers.Serializer):
    """
    Create / update input for any property record.

    Views decide which fields apply to which record kind; this serializer
    only cleans values and checks references exist.
    """

    title = optional_text(255)
    description = optional_text()
    owner_person_id = LenientIntegerField(source='owner_id')
    owner_name = optional_text(255)
    agent_id = LenientIntegerField()

    property_category = optional_text(20)
    property_type = optional_text(20)
    purpose = optional_text(10)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)

    sale_price = LenientDecimalField()
    rent_price = LenientDecimalField()

    province_id = LenientIntegerField()
    district_id = LenientIntegerField()
    area_id = LenientIntegerField()
    address = optional_text()
    city = optional_text(100)
    latitude = LenientDecimalField(decimal_places=8)
    longitude = LenientDecimalField(decimal_places=8)

    area_size = optional_text(50)
    bedrooms = LenientIntegerField()
    bathrooms = LenientIntegerField()

    facilities = LenientJSONField()
    amenities = LenientJSONField()
    details = LenientJSONField()
    photos = LenientJSONField()
    attachments = LenientJSONField()
    videos = LenientJSONField()

    is_available_for_sale = serializers.BooleanField(required=False)
    is_available_for_rent = serializers.BooleanField(required=False)

    unit_number = optional_text(50)
    floor = optional_text(20)
    total_floors = LenientIntegerField()
    planned_units = LenientIntegerField()

    def validate_property_type(self, value):
        if not value:
            return None
        normalized = value.strip().lower()
        if normalized not in dict(PROPERTY_TYPE_CHOICES):
            raise serializers.ValidationError(f"Invalid property type: {value}")
        return normalized

    def validate_purpose(self, value):
        if not value:
            return None
        normalized = value.strip().lower()
        if normalized not in dict(PURPOSE_CHOICES):
            raise serializers.ValidationError('Purpose must be sale or rent')
        return normalized

    def _validate_media(self, value):
        if value is None:
            return []
        if not isinstance(value, list):
            return [value]
        return value

    validate_photos = _validate_media
    validate_attachments = _validate_media
    validate_videos = _validate_media

    def validate_details(self, value):
        return value if isinstance(value, dict) else {}

    def validate(self, attrs):
        references = [
            ('province_id', Province, 'Province not found'),
            ('district_id', District, 'District not found'),
            ('area_id', Area, 'Area not found'),
        ]
        for key, model, message in references:
            value = attrs.get(key)
            if value and not model.objects.filter(pk=value).exists():
                raise serializers.ValidationError({key: message})

        agent_id = attrs.get('agent_id')
        if agent_id:
            if not get_user_model().objects.filter(pk=agent_id).exists():
                raise serializers.ValidationError({'agent_id': 'Agent not found'})

        # amenities is an alias some clients send for unit facilities
        amenities = attrs.pop('amenities', None)
        if attrs.get('facilities') is None and amenities is not None:
            attrs['facilities'] = amenities
        return attrs


# =============================================================================
# OUTPUT SERIALIZERS
# =============================================================================

class ParentSummarySerializer(serializers.ModelSerializer):
    property_id = serializers.IntegerField(source='id', read_only=True)

    class Meta:
        model = Property
        fields = ['id', 'property_id', 'title', 'property_type', 'property_category', 'address']
        read_only_fields = fields


class PropertySerializer(serializers.ModelSerializer):
    """
    Full property payload.

    Child counts come from ``with_unit_counts()`` annotations when present
    and are counted on demand otherwise.
    """

    property_id = serializers.IntegerField(source='id', read_only=True)
    owner_person_id = serializers.IntegerField(source='owner_id', read_only=True)
    agent_id = serializers.IntegerField(read_only=True)
    created_by_user_id = serializers.IntegerField(source='created_by_id', read_only=True)
    parent_id = serializers.IntegerField(read_only=True)
    province_id = serializers.IntegerField(read_only=True)
    district_id = serializers.IntegerField(read_only=True)
    area_id = serializers.IntegerField(read_only=True)

    current_owner = PersonBriefSerializer(source='owner', read_only=True)
    agent = UserSummarySerializer(read_only=True)
    creator = UserSummarySerializer(source='created_by', read_only=True)
    parent = ParentSummarySerializer(read_only=True)

    province_name = serializers.CharField(source='province.name', read_only=True, default=None)
    district_name = serializers.CharField(source='district.name', read_only=True, default=None)
    area_name = serializers.CharField(source='area.name', read_only=True, default=None)

    forSale = serializers.BooleanField(source='is_available_for_sale', read_only=True)
    forRent = serializers.BooleanField(source='is_available_for_rent', read_only=True)

    total_children = serializers.SerializerMethodField()
    available_children = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = [
            'id',
            'property_id',
            'property_code',
            'title',
            'description',
            'status',
            'property_category',
            'record_kind',
            'property_type',
            'is_parent',
            'parent_id',
            'parent',
            'owner_person_id',
            'owner_name',
            'current_owner',
            'agent_id',
            'agent',
            'created_by_user_id',
            'creator',
            'purpose',
            'sale_price',
            'rent_price',
            'province_id',
            'province_name',
            'district_id',
            'district_name',
            'area_id',
            'area_name',
            'address',
            'city',
            'latitude',
            'longitude',
            'area_size',
            'bedrooms',
            'bathrooms',
            'details',
            'facilities',
            'photos',
            'attachments',
            'videos',
            'is_available_for_sale',
            'is_available_for_rent',
            'forSale',
            'forRent',
            'unit_number',
            'floor',
            'total_floors',
            'total_units',
            'total_children',
            'available_children',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_total_children(self, obj):
        annotated = getattr(obj, 'total_children', None)
        if annotated is not None:
            return annotated
        return obj.children.count()

    def get_available_children(self, obj):
        annotated = getattr(obj, 'available_children', None)
        if annotated is not None:
            return annotated
        return obj.children.filter(status='active').count()


class HomeContainerSerializer(serializers.ModelSerializer):
    """Container card for the home screen reels."""

    images = serializers.SerializerMethodField()
    city = serializers.SerializerMethodField()
    province = serializers.CharField(source='province.name', read_only=True, default=None)
    availableUnits = serializers.IntegerField(source='available_children', read_only=True)
    totalUnits = serializers.SerializerMethodField()
    forSaleUnits = serializers.IntegerField(source='for_sale_children', read_only=True)
    forRentUnits = serializers.IntegerField(source='for_rent_children', read_only=True)
    category = serializers.CharField(source='property_category', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id',
            'title',
            'images',
            'city',
            'province',
            'availableUnits',
            'totalUnits',
            'forSaleUnits',
            'forRentUnits',
            'category',
        ]
        read_only_fields = fields

    def get_images(self, obj):
        photos = obj.photos if isinstance(obj.photos, list) else []
        return photos or [FALLBACK_CONTAINER_IMAGE]

    def get_city(self, obj):
        if obj.district_id:
            return obj.district.name
        return obj.city

    def get_totalUnits(self, obj):
        return obj.total_units or obj.total_children
