from django.contrib import admin
from .models import FundMovement, Transaction


@admin.register(FundMovement)
class FundMovementAdmin(admin.ModelAdmin):
    list_display = ['id', 'flow_type', 'from_client', 'to_client', 'from_platform', 'to_platform', 'amount', 'settlement_status', 'created_at']
    list_filter = ['flow_type', 'settlement_status', 'method']
    raw_id_fields = ['from_client', 'to_client', 'recorded_by', 'reviewed_by']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'amount', 'status', 'client', 'platform_type', 'created_at']
    list_filter = ['type', 'status', 'platform_type']
    search_fields = ['description', 'reference']
    raw_id_fields = ['client', 'fund_movement', 'bonus_pool', 'recorded_by']

    def has_change_permission(self, request, obj=None):
        return False
