from django.contrib import admin

from .models import Deal


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    list_display = ['id', 'deal_type', 'status', 'property', 'agent', 'buyer_name', 'price', 'created_at']
    list_filter = ['deal_type', 'status']
    search_fields = ['seller_name', 'buyer_name', 'property__property_code', 'property__title']
    raw_id_fields = ['property', 'agent', 'seller', 'buyer']
    readonly_fields = ['deal_completed_at', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
