from rest_framework import serializers

from clients.platforms import get_platform_name
from .models import ToDo


class ToDoSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    assigned_to_name = serializers.CharField(source='assigned_to.name', read_only=True)
    platform_name = serializers.SerializerMethodField()
    extensions_remaining = serializers.SerializerMethodField()

    class Meta:
        model = ToDo
        fields = [
            'id', 'title', 'description', 'type', 'status', 'priority', 'due_date',
            'client', 'client_name', 'assigned_to', 'assigned_to_name', 'created_by',
            'platform_type', 'platform_name', 'step_number', 'extensions_used', 'max_extensions',
            'extensions_remaining', 'screenshots', 'metadata', 'completed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_platform_name(self, obj):
        return get_platform_name(obj.platform_type) if obj.platform_type else None

    def get_extensions_remaining(self, obj):
        return max(obj.max_extensions - obj.extensions_used, 0)


class DetectionSerializer(serializers.Serializer):
    path = serializers.CharField()
    content_type = serializers.CharField(required=False)
    confidence = serializers.FloatField(required=False)
    extracted = serializers.DictField(required=False)


class ConfirmUploadSerializer(serializers.Serializer):
    detections = DetectionSerializer(many=True)
