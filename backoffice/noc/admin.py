from django.contrib import admin

from noc.models import Noc, NocOwner


class NocOwnerInline(admin.TabularInline):
    model = NocOwner
    extra = 0


@admin.register(Noc)
class NocAdmin(admin.ModelAdmin):
    list_display = ('building_project_name', 'property_type', 'agreement_type', 'client_phone', 'created_at')
    list_filter = ('property_type', 'agreement_type')
    search_fields = ('building_project_name', 'community', 'client_phone')
    inlines = [NocOwnerInline]
