from rest_framework import serializers

from .models import BonusAllocation, BonusPool


class BonusAllocationSerializer(serializers.ModelSerializer):
    agent_name = serializers.CharField(source='agent.name', read_only=True)
    client_id = serializers.IntegerField(source='bonus_pool.client_id', read_only=True)
    client_name = serializers.CharField(source='bonus_pool.client.name', read_only=True)

    class Meta:
        model = BonusAllocation
        fields = [
            'id', 'bonus_pool', 'client_id', 'client_name', 'agent', 'agent_name', 'type', 'slices',
            'amount', 'star_level_at_time', 'status', 'paid_at', 'created_at',
        ]
        read_only_fields = fields


class BonusPoolSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    closer_name = serializers.CharField(source='closer.name', read_only=True)
    allocations = BonusAllocationSerializer(many=True, read_only=True)

    class Meta:
        model = BonusPool
        fields = [
            'id', 'client', 'client_name', 'closer', 'closer_name', 'total_amount', 'direct_amount',
            'star_pool_amount', 'distributed_slices', 'recycled_slices', 'status', 'hierarchy_snapshot',
            'allocations', 'created_at',
        ]
        read_only_fields = fields


class AllocationIdsSerializer(serializers.Serializer):
    allocation_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class AgentIdSerializer(serializers.Serializer):
    agent_id = serializers.IntegerField()
