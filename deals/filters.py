"""
Deals Filters - KorX Backend API
Filters for the admin deal management screen.
"""

from django_filters import rest_framework as filters
from django_filters import CharFilter, DateFilter, NumberFilter

from .models import Deal


class AdminDealFilter(filters.FilterSet):
    """
    Admin deal filters.

    The created_at range applies only when both startDate and endDate
    are given.
    """

    status = CharFilter(field_name='status', lookup_expr='exact')
    agent_id = NumberFilter(field_name='agent_id')
    property_id = NumberFilter(field_name='property_id')
    startDate = DateFilter(method='filter_created_range')
    endDate = DateFilter(method='filter_range_end')

    class Meta:
        model = Deal
        fields = []

    def filter_created_range(self, queryset, name, value):
        end = self.form.cleaned_data.get('endDate')
        if not end:
            return queryset
        return queryset.filter(created_at__date__gte=value, created_at__date__lte=end)

    def filter_range_end(self, queryset, name, value):
        # Consumed by filter_created_range
        return queryset
