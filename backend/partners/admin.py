from django.contrib import admin
from .models import Partner, ProfitShareDetail, ProfitShareRule


class ProfitShareRuleInline(admin.TabularInline):
    model = ProfitShareRule
    extra = 0
    fields = ['name', 'split_type', 'partner_percent', 'company_percent', 'fixed_amount', 'applies_to', 'priority', 'status']


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'contact_name', 'email', 'status']
    list_filter = ['type', 'status']
    search_fields = ['name', 'contact_name', 'email']
    inlines = [ProfitShareRuleInline]


@admin.register(ProfitShareDetail)
class ProfitShareDetailAdmin(admin.ModelAdmin):
    list_display = ['partner', 'client', 'transaction_type', 'gross_amount', 'partner_amount', 'company_amount', 'status']
    list_filter = ['status', 'transaction_type']
    raw_id_fields = ['client', 'transaction', 'fund_movement']
