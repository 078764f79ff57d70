from django.contrib import admin

from properties.models import PropertyDraft


@admin.register(PropertyDraft)
class PropertyDraftAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_id', 'original_property_id', 'updated_at')
    search_fields = ('user_id', 'original_property_id')
