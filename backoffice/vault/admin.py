from django.contrib import admin

from .models import AgentPassword, PasswordEntry


@admin.register(PasswordEntry)
class PasswordEntryAdmin(admin.ModelAdmin):
    # Ciphertext columns are never shown
    list_display = ('title', 'created_by', 'created_at')
    search_fields = ('title',)
    fields = ('title', 'note', 'created_by', 'access_ids')
    readonly_fields = ('created_by',)


@admin.register(AgentPassword)
class AgentPasswordAdmin(admin.ModelAdmin):
    list_display = ('agent', 'email', 'created_at')
    search_fields = ('email', 'agent__name')
    fields = ('agent', 'email')
