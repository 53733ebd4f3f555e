from django.conf import settings
from django.db import models

from clients.platforms import PLATFORM_CHOICES


class ToDo(models.Model):
    """
    A unit of agent work generated by the intake workflow.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_OVERDUE = 'OVERDUE'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_OVERDUE, 'Overdue'),
    ]
    OPEN_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)

    TYPE_VERIFICATION = 'VERIFICATION'
    TYPE_UPLOAD_SCREENSHOT = 'UPLOAD_SCREENSHOT'
    TYPE_EXECUTION = 'EXECUTION'
    TYPE_PROVIDE_INFO = 'PROVIDE_INFO'
    TYPE_PHONE_SIGNOUT = 'PHONE_SIGNOUT'
    TYPE_PHONE_RETURN = 'PHONE_RETURN'

    TYPE_CHOICES = [
        (TYPE_VERIFICATION, 'Verification'),
        (TYPE_UPLOAD_SCREENSHOT, 'Upload Screenshot'),
        (TYPE_EXECUTION, 'Execution'),
        (TYPE_PROVIDE_INFO, 'Provide Info'),
        (TYPE_PHONE_SIGNOUT, 'Phone Sign-out'),
        (TYPE_PHONE_RETURN, 'Phone Return'),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    priority = models.PositiveSmallIntegerField(default=1)
    due_date = models.DateTimeField(null=True, blank=True)

    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='todos')
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='todos')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_todos'
    )

    platform_type = models.CharField(max_length=20, choices=PLATFORM_CHOICES, blank=True, null=True)
    step_number = models.PositiveSmallIntegerField(null=True, blank=True)
    extensions_used = models.PositiveSmallIntegerField(default=0)
    max_extensions = models.PositiveSmallIntegerField(default=3)
    screenshots = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['due_date', '-priority', 'id']
        indexes = [
            models.Index(fields=['assigned_to', 'status'], name='todo_assignee_status_idx'),
            models.Index(fields=['client', 'type', 'status'], name='todo_client_type_status_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES
