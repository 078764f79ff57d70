from django.contrib import admin

from watermarks.models import Watermark


@admin.register(Watermark)
class WatermarkAdmin(admin.ModelAdmin):
    list_display = ('name', 'type', 'position', 'is_active', 'created_at')
    list_filter = ('type', 'is_active')
    search_fields = ('name', 'text')
