"""
Properties Filters - KorX Backend API
Django REST Framework filters for listings and containers.

Provides filtering capabilities for:
- Marketplace search (text, location, type, price ranges, bedrooms)
- Admin property management (agent assignment, purpose, status)

Marketplace visibility (active + available) is applied by the views, not
here, because it depends on who is asking.
"""

from django.db.models import Q
from django_filters import rest_framework as filters
from django_filters import BooleanFilter, CharFilter, NumberFilter

from .models import Property


# =============================================================================
# MARKETPLACE SEARCH
# =============================================================================

class PropertySearchFilter(filters.FilterSet):
    """
    Search filters for /properties/search/.

    ``record_kind`` defaults to listing when omitted.
    """

    # =============================================================================
    # CLASSIFICATION
    # =============================================================================

    record_kind = CharFilter(method='filter_record_kind')
    property_category = CharFilter(field_name='property_category', lookup_expr='iexact')
    property_type = CharFilter(field_name='property_type', lookup_expr='iexact')
    purpose = CharFilter(field_name='purpose', lookup_expr='iexact')
    parent_id = NumberFilter(field_name='parent_id')

    # =============================================================================
    # TEXT SEARCH
    # =============================================================================

    search = CharFilter(
        method='filter_search',
        help_text='Text search over titles, addresses, codes, people and places'
    )

    city = CharFilter(field_name='city', lookup_expr='icontains')

    # =============================================================================
    # AVAILABILITY
    # =============================================================================

    is_available_for_sale = CharFilter(method='filter_flag_true')
    is_available_for_rent = CharFilter(method='filter_flag_true')

    # =============================================================================
    # PEOPLE AND LOCATION
    # =============================================================================

    agent_id = NumberFilter(field_name='agent_id')
    created_by_user_id = NumberFilter(field_name='created_by_id')
    province_id = NumberFilter(field_name='province_id')
    district_id = NumberFilter(field_name='district_id')
    area_id = NumberFilter(field_name='area_id')

    # =============================================================================
    # SIZE AND PRICE
    # =============================================================================

    bedrooms = CharFilter(method='filter_bedrooms')

    min_sale_price = NumberFilter(field_name='sale_price', lookup_expr='gte')
    max_sale_price = NumberFilter(field_name='sale_price', lookup_expr='lte')
    min_rent_price = NumberFilter(field_name='rent_price', lookup_expr='gte')
    max_rent_price = NumberFilter(field_name='rent_price', lookup_expr='lte')

    class Meta:
        model = Property
        fields = []

    @property
    def qs(self):
        queryset = super().qs
        if not self.data.get('record_kind'):
            queryset = queryset.filter(record_kind='listing')
        return queryset

    def filter_record_kind(self, queryset, name, value):
        return queryset.filter(record_kind=value.strip().lower())

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value)
            | Q(description__icontains=value)
            | Q(address__icontains=value)
            | Q(city__icontains=value)
            | Q(owner_name__icontains=value)
            | Q(property_code__icontains=value)
            | Q(agent__full_name__icontains=value)
            | Q(created_by__full_name__icontains=value)
            | Q(province__name__icontains=value)
            | Q(district__name__icontains=value)
            | Q(area__name__icontains=value)
            | Q(parent__title__icontains=value)
            | Q(parent__address__icontains=value)
        )

    def filter_flag_true(self, queryset, name, value):
        # Only "true" narrows the results; anything else is ignored
        if str(value).lower() == 'true':
            return queryset.filter(**{name: True})
        return queryset

    def filter_bedrooms(self, queryset, name, value):
        """``5`` means five or more; other values match exactly."""
        value = str(value).strip()
        if not value.lstrip('-').isdigit():
            return queryset
        if value == '5':
            return queryset.filter(bedrooms__gte=5)
        return queryset.filter(bedrooms=int(value))


# =============================================================================
# ADMIN PROPERTY FILTERS
# =============================================================================

class AdminPropertyFilter(filters.FilterSet):
    """
    Filters for the admin property management screen.

    - agent_id: a user id, or ``none`` for unassigned listings
    - purpose: SALE / RENT map onto the availability flags
    """

    city = CharFilter(field_name='city', lookup_expr='iexact')
    province_id = NumberFilter(field_name='province_id')
    district_id = NumberFilter(field_name='district_id')
    status = CharFilter(field_name='status', lookup_expr='exact')
    agent_id = CharFilter(method='filter_agent')
    purpose = CharFilter(method='filter_purpose')
    search = CharFilter(method='filter_search')
    is_parent = BooleanFilter(field_name='is_parent')

    class Meta:
        model = Property
        fields = []

    def filter_agent(self, queryset, name, value):
        if value == 'none':
            return queryset.filter(agent__isnull=True)
        if not value.isdigit():
            return queryset.none()
        return queryset.filter(agent_id=int(value))

    def filter_purpose(self, queryset, name, value):
        value = value.upper()
        if value == 'SALE':
            return queryset.filter(is_available_for_sale=True)
        if value == 'RENT':
            return queryset.filter(is_available_for_rent=True)
        return queryset

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value)
            | Q(property_type__icontains=value)
            | Q(address__icontains=value)
            | Q(city__icontains=value)
            | Q(property_code__icontains=value)
        )
