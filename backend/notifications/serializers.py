from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            'id', 'title', 'message', 'notification_type', 'is_read', 'read_at',
            'link', 'client', 'client_name', 'created_at',
        ]
        read_only_fields = fields
