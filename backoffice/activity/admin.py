from django.contrib import admin

from activity.models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'ip_address', 'created_at')
    search_fields = ('action', 'description', 'user__email', 'user__full_name')
    list_filter = ('created_at',)
    readonly_fields = ('id', 'user', 'action', 'description', 'ip_address', 'created_at')
