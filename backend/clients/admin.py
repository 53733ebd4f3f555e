from django.contrib import admin
from .models import ApplicationDraft, Client, ClientPlatform, EventLog, ExtensionRequest, PhoneAssignment


class ClientPlatformInline(admin.TabularInline):
    model = ClientPlatform
    extra = 0
    fields = ['platform_type', 'status', 'username', 'retry_count', 'reviewed_by', 'reviewed_at']
    readonly_fields = ['reviewed_by', 'reviewed_at']


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'agent', 'partner', 'intake_status', 'execution_deadline', 'created_at']
    list_filter = ['intake_status', 'partner']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    raw_id_fields = ['agent', 'closed_by']
    inlines = [ClientPlatformInline]


@admin.register(EventLog)
class EventLogAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'client', 'user', 'old_value', 'new_value', 'created_at']
    list_filter = ['event_type']
    search_fields = ['description']
    raw_id_fields = ['client', 'user']

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ExtensionRequest)
class ExtensionRequestAdmin(admin.ModelAdmin):
    list_display = ['client', 'requested_by', 'requested_days', 'status', 'created_at']
    list_filter = ['status']


admin.site.register(PhoneAssignment)
admin.site.register(ApplicationDraft)
