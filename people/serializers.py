"""
Serializers for the people app.

- PersonBriefSerializer: owner / seller / buyer reference inside other payloads
- PersonSerializer: full person record with owned listings and linked user
- PersonWriteSerializer: create and partial update input
"""

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from properties.models import Property

from .models import Person


class PersonBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Person
        fields = ['id', 'full_name', 'phone', 'email', 'address']
        read_only_fields = fields


class OwnedListingSerializer(serializers.ModelSerializer):
    """Compact listing row shown under a person."""

    property_id = serializers.IntegerField(source='id', read_only=True)
    forSale = serializers.BooleanField(source='is_available_for_sale', read_only=True)
    forRent = serializers.BooleanField(source='is_available_for_rent', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id',
            'property_id',
            'property_code',
            'title',
            'property_type',
            'property_category',
            'status',
            'purpose',
            'sale_price',
            'rent_price',
            'address',
            'city',
            'photos',
            'forSale',
            'forRent',
        ]
        read_only_fields = fields


class PersonSerializer(serializers.ModelSerializer):
    """Person with the listings they own and their linked account."""

    properties = serializers.SerializerMethodField()
    user = UserSummarySerializer(read_only=True)
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Person
        fields = [
            'id',
            'full_name',
            'phone',
            'email',
            'national_id',
            'id_card_path',
            'address',
            'user_id',
            'user',
            'properties',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_properties(self, obj):
        listings = [prop for prop in obj.owned_properties.all() if prop.record_kind == 'listing']
        return OwnedListingSerializer(listings, many=True).data


class PersonWriteSerializer(serializers.ModelSerializer):
    """
    Create / update input.

    Uniqueness of national id and phone is checked by the view so the
    conflicting person can be reported back.
    """

    full_name = serializers.CharField(max_length=255, required=False)
    national_id = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(max_length=255, required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Person
        fields = ['full_name', 'phone', 'email', 'national_id', 'address']

    def validate_full_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Full name is required')
        return value.strip()

    def validate_national_id(self, value):
        return (value or '').strip() or None

    def validate_phone(self, value):
        return (value or '').strip() or None

    def validate_email(self, value):
        return value or None

    def validate(self, attrs):
        if not self.partial and not attrs.get('full_name'):
            raise serializers.ValidationError({'full_name': 'Full name is required'})
        return attrs
