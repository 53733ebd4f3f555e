from rest_framework import serializers

from .models import FundMovement, Transaction


class FundMovementSerializer(serializers.ModelSerializer):
    from_client_name = serializers.CharField(source='from_client.name', read_only=True)
    to_client_name = serializers.CharField(source='to_client.name', read_only=True, default=None)
    recorded_by_name = serializers.CharField(source='recorded_by.name', read_only=True)
    reviewed_by_name = serializers.CharField(source='reviewed_by.name', read_only=True, default=None)

    class Meta:
        model = FundMovement
        fields = [
            'id', 'type', 'flow_type', 'from_client', 'from_client_name', 'to_client', 'to_client_name',
            'from_platform', 'to_platform', 'amount', 'currency', 'fee', 'method', 'status', 'notes',
            'settlement_status', 'reviewed_by', 'reviewed_by_name', 'reviewed_at', 'review_notes',
            'recorded_by', 'recorded_by_name', 'created_at',
        ]
        read_only_fields = fields


class FundMovementCreateSerializer(serializers.Serializer):
    """
    Platforms are display names ("Bally Bet"); amount and platform rules are
    checked by FundMovementService.
    """
    flow_type = serializers.ChoiceField(choices=FundMovement.FLOW_TYPE_CHOICES, required=False)
    from_client_id = serializers.IntegerField()
    to_client_id = serializers.IntegerField(required=False, allow_null=True)
    from_platform = serializers.CharField(max_length=50)
    to_platform = serializers.CharField(max_length=50)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    fee = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    method = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SettlementReviewSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class MovementIdsSerializer(serializers.Serializer):
    movement_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class TransactionSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)
    recorded_by_name = serializers.CharField(source='recorded_by.name', read_only=True)
    signed_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'type', 'amount', 'signed_amount', 'currency', 'status', 'client', 'client_name',
            'platform_type', 'fund_movement', 'bonus_pool', 'description', 'reference', 'document_url',
            'metadata', 'recorded_by', 'recorded_by_name', 'created_at',
        ]
        read_only_fields = fields


class TransactionHistoryQuerySerializer(serializers.Serializer):
    client_id = serializers.IntegerField(required=False)
    type = serializers.ChoiceField(choices=Transaction.TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Transaction.STATUS_CHOICES, required=False)
    platform_type = serializers.CharField(required=False)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)
    search = serializers.CharField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=50)


class ReverseTransactionSerializer(serializers.Serializer):
    reason = serializers.CharField()
