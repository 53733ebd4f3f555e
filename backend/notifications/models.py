from django.conf import settings
from django.db import models
from django.utils import timezone

from clients.models import EventLog


class Notification(models.Model):
    """
    Model for in-system notifications shown to users.
    """
    TYPE_CHOICES = EventLog.EVENT_TYPE_CHOICES

    title = models.CharField(max_length=255)
    message = models.TextField()
    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES)

    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    # Frontend path the notification links to, e.g. /agent/clients/42
    link = models.CharField(max_length=500, null=True, blank=True)
    client = models.ForeignKey(
        'clients.Client', on_delete=models.CASCADE, null=True, blank=True, related_name='notifications'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='notif_recipient_read_idx'),
            models.Index(fields=['notification_type'], name='notif_type_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.recipient.email}"

    def mark_as_read(self):
        """Mark notification as read"""
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=['is_read', 'read_at'])
