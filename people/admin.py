from django.contrib import admin

from .models import Person


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'phone', 'email', 'national_id', 'user', 'created_at']
    search_fields = ['full_name', 'phone', 'email', 'national_id']
    raw_id_fields = ['user']
    readonly_fields = ['created_at', 'updated_at']
