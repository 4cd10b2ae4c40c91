"""
Accounts Filters - KorX Backend API

FilterSet used by the admin user management screen.
"""

from django.contrib.auth import get_user_model
from django.db.models import Q
from django_filters import rest_framework as filters
from django_filters import BooleanFilter, CharFilter, NumberFilter

User = get_user_model()


class AdminUserFilter(filters.FilterSet):
    """
    Filtering for the admin users list.

    - role: exact role (admin, agent, user)
    - search: partial match on full name, email or phone
    - is_active: true / false
    - id: a single user
    """

    role = CharFilter(field_name='role', lookup_expr='exact')

    search = CharFilter(
        method='filter_search',
        help_text='Search by name, email or phone'
    )

    is_active = BooleanFilter(field_name='is_active')

    id = NumberFilter(field_name='id')

    class Meta:
        model = User
        fields = ['role', 'search', 'is_active', 'id']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(full_name__icontains=value)
            | Q(email__icontains=value)
            | Q(phone__icontains=value)
        )
