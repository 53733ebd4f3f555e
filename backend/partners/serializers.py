from rest_framework import serializers

from .models import Partner, ProfitShareDetail, ProfitShareRule


class PartnerSerializer(serializers.ModelSerializer):
    client_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Partner
        fields = [
            'id', 'name', 'type', 'contact_name', 'email', 'phone', 'notes', 'status',
            'client_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'client_count', 'created_at', 'updated_at']


class ProfitShareRuleSerializer(serializers.ModelSerializer):
    """
    Read shape of a rule, also used to validate rule payloads.
    ``partner_id`` is only accepted on create.
    """
    partner_id = serializers.IntegerField(write_only=True, required=False)
    partner_name = serializers.CharField(source='partner.name', read_only=True)

    class Meta:
        model = ProfitShareRule
        fields = [
            'id', 'partner', 'partner_id', 'partner_name', 'name', 'description', 'split_type',
            'partner_percent', 'company_percent', 'fixed_amount', 'applies_to', 'platform_type',
            'min_amount', 'max_amount', 'fee_percent', 'fee_fixed', 'effective_from', 'effective_to',
            'priority', 'status', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'partner', 'created_at', 'updated_at']
        extra_kwargs = {
            'effective_from': {'required': False},
        }


class ProfitShareDetailSerializer(serializers.ModelSerializer):
    partner_name = serializers.CharField(source='partner.name', read_only=True)
    rule_name = serializers.CharField(source='rule.name', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)

    class Meta:
        model = ProfitShareDetail
        fields = [
            'id', 'partner', 'partner_name', 'rule', 'rule_name', 'client', 'client_name', 'transaction',
            'fund_movement', 'transaction_type', 'gross_amount', 'fee_amount', 'net_amount',
            'partner_amount', 'company_amount', 'status', 'paid_at', 'paid_by', 'created_at',
        ]
        read_only_fields = fields


class DetailIdsSerializer(serializers.Serializer):
    detail_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
