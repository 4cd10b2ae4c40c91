"""
Pagination classes shared by the KorX API.

Two shapes are used by clients:
- Admin screens expect a page envelope: {total, pages, currentPage, <rows>}
- Marketplace lists expect a bare array windowed with ?limit=&offset=
"""

import math

from django.core.paginator import Page
from rest_framework.exceptions import NotFound
from rest_framework.pagination import LimitOffsetPagination, PageNumberPagination
from rest_framework.response import Response

from services.business_logic import sanitize_int


# =============================================================================
# ADMIN PAGE ENVELOPE
# =============================================================================

class AdminPagination(PageNumberPagination):
    """
    Page-number pagination for admin listings.

    Usage:
        GET /api/admin/users/                  → page 1, 10 rows
        GET /api/admin/users/?page=2&limit=25  → page 2, 25 rows
        GET /api/admin/users/?page=99          → page 99, no rows

    Subclasses (or views) set ``results_key`` to name the rows array.
    """
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 500
    results_key = 'results'

    def paginate_queryset(self, queryset, request, view=None):
        try:
            return super().paginate_queryset(queryset, request, view)
        except NotFound:
            # Past the last page: same envelope, no rows
            paginator = self.django_paginator_class(queryset, self.get_page_size(request))
            number = sanitize_int(request.query_params.get(self.page_query_param))
            if number is None or number < 1:
                self.page = paginator.page(1)
            else:
                self.page = Page([], number, paginator)
            self.request = request
            return list(self.page)

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        page_size = self.get_page_size(self.request) or self.page_size
        return Response({
            'total': total,
            'pages': math.ceil(total / page_size) if page_size else 0,
            'currentPage': self.page.number,
            self.results_key: data,
        })


def admin_pagination(key):
    """Build an AdminPagination subclass whose rows live under ``key``."""
    return type(f'{key.title()}AdminPagination', (AdminPagination,), {'results_key': key})


# =============================================================================
# LIMIT / OFFSET WINDOW
# =============================================================================

class ListingWindowPagination(LimitOffsetPagination):
    """
    Limit/offset window that returns the rows as a plain list.

    Without ``?limit=`` the whole queryset is returned.
    """
    default_limit = None
    max_limit = 500

    def paginate_queryset(self, queryset, request, view=None):
        self.limit = self.get_limit(request)
        if self.limit is None:
            self.offset = self.get_offset(request)
            self.request = request
            return list(queryset[self.offset:])
        return super().paginate_queryset(queryset, request, view)

    def get_paginated_response(self, data):
        return Response(data)
