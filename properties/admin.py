"""
Properties Admin - KorX Backend
Django admin configuration for listings, containers and their history.
"""

from django.contrib import admin
from django.db import models
from django.forms import TextInput

from .models import NearbyCache, Property, PropertyHistory


# =============================================================================
# INLINE ADMIN CLASSES
# =============================================================================

class ChildUnitInline(admin.TabularInline):
    """Units listed under their container."""
    model = Property
    fk_name = 'parent'
    extra = 0
    show_change_link = True

    fields = [
        'title',
        'property_type',
        'unit_number',
        'floor',
        'status',
        'is_available_for_sale',
        'is_available_for_rent',
    ]

    formfield_overrides = {
        models.CharField: {'widget': TextInput(attrs={'size': '20'})},
    }


class PropertyHistoryInline(admin.TabularInline):
    model = PropertyHistory
    extra = 0
    can_delete = False
    fields = ['change_type', 'previous_owner', 'new_owner', 'change_date', 'details']
    readonly_fields = fields


# =============================================================================
# MAIN ADMIN CLASSES
# =============================================================================

@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    """
    Admin interface for every property record.

    Containers show their units inline; listings show ownership history.
    """

    list_display = [
        'id',
        'property_code',
        'title',
        'property_category',
        'record_kind',
        'property_type',
        'status',
        'agent',
        'created_at',
    ]
    list_filter = ['record_kind', 'property_category', 'status', 'purpose', 'province']
    search_fields = ['title', 'property_code', 'address', 'city', 'owner_name']
    raw_id_fields = ['owner', 'agent', 'created_by', 'parent']
    readonly_fields = ['created_at', 'updated_at']
    list_per_page = 50

    fieldsets = (
        ('Classification', {
            'fields': ('title', 'property_code', 'property_category', 'record_kind',
                       'property_type', 'status', 'is_parent', 'parent')
        }),
        ('People', {
            'fields': ('owner', 'owner_name', 'agent', 'created_by')
        }),
        ('Pricing', {
            'fields': ('purpose', 'sale_price', 'rent_price',
                       'is_available_for_sale', 'is_available_for_rent')
        }),
        ('Location', {
            'fields': ('province', 'district', 'area', 'address', 'city', 'latitude', 'longitude')
        }),
        ('Details', {
            'fields': ('description', 'area_size', 'bedrooms', 'bathrooms', 'unit_number', 'floor',
                       'total_floors', 'total_units', 'details', 'facilities'),
            'classes': ('collapse',)
        }),
        ('Media', {
            'fields': ('photos', 'attachments', 'videos'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_inlines(self, request, obj):
        if obj is not None and obj.is_container:
            return [ChildUnitInline]
        return [PropertyHistoryInline]


@admin.register(NearbyCache)
class NearbyCacheAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'radius_m', 'expires_at', 'updated_at']
    list_filter = ['entity_type']
    readonly_fields = ['created_at', 'updated_at']
