from django.contrib import admin
from .models import BonusAllocation, BonusPool


class BonusAllocationInline(admin.TabularInline):
    model = BonusAllocation
    extra = 0
    readonly_fields = ['agent', 'type', 'slices', 'amount', 'star_level_at_time', 'status', 'paid_at']


@admin.register(BonusPool)
class BonusPoolAdmin(admin.ModelAdmin):
    list_display = ['client', 'closer', 'total_amount', 'distributed_slices', 'recycled_slices', 'status', 'created_at']
    list_filter = ['status']
    raw_id_fields = ['client', 'closer']
    inlines = [BonusAllocationInline]


@admin.register(BonusAllocation)
class BonusAllocationAdmin(admin.ModelAdmin):
    list_display = ['agent', 'bonus_pool', 'type', 'slices', 'amount', 'status', 'paid_at']
    list_filter = ['type', 'status']
