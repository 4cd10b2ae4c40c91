"""
Serializers for the deals app.

- DealCreateSerializer: validates the create payload before the workflow runs
- DealSerializer: deal with property, seller, buyer and agent summaries
"""

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from people.serializers import PersonBriefSerializer
from properties.models import Property

from .models import DEAL_TYPE_CHOICES, Deal


class DealCreateSerializer(serializers.Serializer):
    property_id = serializers.IntegerField(
        error_messages={
            'required': 'property_id is required',
            'invalid': 'property_id must be an integer',
        }
    )
    deal_type = serializers.ChoiceField(
        choices=DEAL_TYPE_CHOICES,
        error_messages={'invalid_choice': 'deal_type must be SALE or RENT'}
    )
    seller_person_id = serializers.IntegerField(required=False, allow_null=True)
    buyer_person_id = serializers.IntegerField(
        error_messages={
            'required': 'buyer_person_id is required',
            'null': 'buyer_person_id is required',
        }
    )
    price = serializers.DecimalField(
        max_digits=18,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
        error_messages={
            'invalid': 'price must be a number',
            'min_value': 'price must be greater than or equal to 0',
        }
    )
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DealPropertySerializer(serializers.ModelSerializer):
    property_id = serializers.IntegerField(source='id', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id',
            'property_id',
            'property_code',
            'title',
            'property_type',
            'property_category',
            'address',
            'city',
            'status',
            'photos',
        ]
        read_only_fields = fields


class DealSerializer(serializers.ModelSerializer):
    deal_id = serializers.IntegerField(source='id', read_only=True)
    property_id = serializers.IntegerField(read_only=True)
    property = DealPropertySerializer(read_only=True)
    seller = PersonBriefSerializer(read_only=True)
    buyer = PersonBriefSerializer(read_only=True)
    agent = UserSummarySerializer(read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id',
            'deal_id',
            'deal_type',
            'status',
            'price',
            'start_date',
            'end_date',
            'notes',
            'property_id',
            'property',
            'seller',
            'buyer',
            'agent',
            'seller_name',
            'seller_phone',
            'buyer_name',
            'buyer_phone',
            'deal_completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
