from django.conf import settings
from django.db import models

from .platforms import PLATFORM_CHOICES


class Client(models.Model):
    """
    An onboarded customer progressing through the intake pipeline.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_PREQUAL_REVIEW = 'PREQUAL_REVIEW'
    STATUS_PREQUAL_APPROVED = 'PREQUAL_APPROVED'
    STATUS_PHONE_ISSUED = 'PHONE_ISSUED'
    STATUS_IN_EXECUTION = 'IN_EXECUTION'
    STATUS_NEEDS_MORE_INFO = 'NEEDS_MORE_INFO'
    STATUS_PENDING_EXTERNAL = 'PENDING_EXTERNAL'
    STATUS_EXECUTION_DELAYED = 'EXECUTION_DELAYED'
    STATUS_READY_FOR_APPROVAL = 'READY_FOR_APPROVAL'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_PARTNERSHIP_ENDED = 'PARTNERSHIP_ENDED'

    INTAKE_STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PREQUAL_REVIEW, 'Prequal Review'),
        (STATUS_PREQUAL_APPROVED, 'Prequal Approved'),
        (STATUS_PHONE_ISSUED, 'Phone Issued'),
        (STATUS_IN_EXECUTION, 'In Execution'),
        (STATUS_NEEDS_MORE_INFO, 'Needs More Info'),
        (STATUS_PENDING_EXTERNAL, 'Pending External'),
        (STATUS_EXECUTION_DELAYED, 'Execution Delayed'),
        (STATUS_READY_FOR_APPROVAL, 'Ready to Approve'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_PARTNERSHIP_ENDED, 'Partnership Ended'),
    ]

    first_name = models.CharField(max_length=100, db_index=True)
    last_name = models.CharField(max_length=100, db_index=True)
    email = models.EmailField(blank=True, null=True, db_index=True)
    phone = models.CharField(max_length=30, blank=True, null=True)

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='clients'
    )
    partner = models.ForeignKey(
        'partners.Partner', on_delete=models.SET_NULL, null=True, blank=True, related_name='clients'
    )

    intake_status = models.CharField(
        max_length=30, choices=INTAKE_STATUS_CHOICES, default=STATUS_PENDING, db_index=True
    )
    status_changed_at = models.DateTimeField(null=True, blank=True)
    execution_deadline = models.DateTimeField(null=True, blank=True)
    deadline_extensions = models.PositiveSmallIntegerField(default=0)

    # Prequalification
    prequal_completed = models.BooleanField(default=False)
    questionnaire = models.JSONField(default=dict, blank=True)
    gmail_account = models.EmailField(blank=True, null=True)
    gmail_password = models.CharField(max_length=255, blank=True, null=True)
    id_document = models.CharField(max_length=500, blank=True, null=True)
    id_expiry = models.DateField(null=True, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    address = models.TextField(blank=True, null=True)

    # Closure
    closed_at = models.DateTimeField(null=True, blank=True)
    closure_reason = models.TextField(blank=True, null=True)
    closure_proof = models.JSONField(default=list, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='closed_clients'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['agent', 'intake_status'], name='client_agent_status_idx'),
            models.Index(fields=['intake_status', 'execution_deadline'], name='client_status_deadline_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def name(self):
        return f"{self.first_name} {self.last_name}".strip()


class ClientPlatform(models.Model):
    """
    Verification state of one third-party account belonging to a client.
    """
    STATUS_NOT_STARTED = 'NOT_STARTED'
    STATUS_PENDING_UPLOAD = 'PENDING_UPLOAD'
    STATUS_PENDING_REVIEW = 'PENDING_REVIEW'
    STATUS_VERIFIED = 'VERIFIED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_RETRY_PENDING = 'RETRY_PENDING'

    STATUS_CHOICES = [
        (STATUS_NOT_STARTED, 'Not Started'),
        (STATUS_PENDING_UPLOAD, 'Pending Upload'),
        (STATUS_PENDING_REVIEW, 'Pending Review'),
        (STATUS_VERIFIED, 'Verified'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_RETRY_PENDING, 'Retry Pending'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='platforms')
    platform_type = models.CharField(max_length=20, choices=PLATFORM_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED, db_index=True)
    username = models.CharField(max_length=255, blank=True, null=True)
    account_id = models.CharField(max_length=255, blank=True, null=True)
    screenshots = models.JSONField(default=list, blank=True)
    agent_result = models.CharField(max_length=50, blank=True, null=True)

    review_notes = models.TextField(blank=True, null=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_platforms'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    retry_after = models.DateTimeField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['client', 'id']
        constraints = [
            models.UniqueConstraint(fields=['client', 'platform_type'], name='unique_client_platform'),
        ]

    def __str__(self):
        return f"{self.client} - {self.platform_type} ({self.status})"


class EventLog(models.Model):
    """
    Append-only audit trail of client and user actions.
    """
    STATUS_CHANGE = 'STATUS_CHANGE'
    APPLICATION_SUBMITTED = 'APPLICATION_SUBMITTED'
    TODO_CREATED = 'TODO_CREATED'
    TODO_COMPLETED = 'TODO_COMPLETED'
    DEADLINE_EXTENDED = 'DEADLINE_EXTENDED'
    DEADLINE_MISSED = 'DEADLINE_MISSED'
    PLATFORM_STATUS_CHANGE = 'PLATFORM_STATUS_CHANGE'
    PLATFORM_UPLOAD = 'PLATFORM_UPLOAD'
    APPROVAL = 'APPROVAL'
    REJECTION = 'REJECTION'
    TRANSACTION_CREATED = 'TRANSACTION_CREATED'
    USER_CREATED = 'USER_CREATED'
    USER_UPDATED = 'USER_UPDATED'
    USER_DEACTIVATED = 'USER_DEACTIVATED'

    EVENT_TYPE_CHOICES = [
        (STATUS_CHANGE, 'Status Change'),
        (APPLICATION_SUBMITTED, 'Application Submitted'),
        (TODO_CREATED, 'To-do Created'),
        (TODO_COMPLETED, 'To-do Completed'),
        (DEADLINE_EXTENDED, 'Deadline Extended'),
        (DEADLINE_MISSED, 'Deadline Missed'),
        (PLATFORM_STATUS_CHANGE, 'Platform Status Change'),
        (PLATFORM_UPLOAD, 'Platform Upload'),
        (APPROVAL, 'Approval'),
        (REJECTION, 'Rejection'),
        (TRANSACTION_CREATED, 'Transaction Created'),
        (USER_CREATED, 'User Created'),
        (USER_UPDATED, 'User Updated'),
        (USER_DEACTIVATED, 'User Deactivated'),
    ]

    event_type = models.CharField(max_length=30, choices=EVENT_TYPE_CHOICES, db_index=True)
    description = models.TextField()
    client = models.ForeignKey(Client, on_delete=models.CASCADE, null=True, blank=True, related_name='events')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='events'
    )
    old_value = models.CharField(max_length=255, blank=True, null=True)
    new_value = models.CharField(max_length=255, blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['client', 'event_type'], name='event_client_type_idx'),
        ]

    def __str__(self):
        return f"{self.event_type}: {self.description}"


class ApplicationDraft(models.Model):
    """
    Partially completed intake form saved by an agent.
    """
    agent = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='application_drafts')
    data = models.JSONField(default=dict, blank=True)
    step = models.PositiveSmallIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"Draft #{self.pk} by {self.agent}"


class PhoneAssignment(models.Model):
    """
    Company phone issued to an agent for one client's execution phase.
    """
    client = models.OneToOneField(Client, on_delete=models.CASCADE, related_name='phone_assignment')
    agent = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='phone_assignments')
    phone_number = models.CharField(max_length=30)
    device_id = models.CharField(max_length=100, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    issued_at = models.DateTimeField(null=True, blank=True)
    signed_out_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.phone_number} -> {self.client}"


class ExtensionRequest(models.Model):
    """
    Agent request to push a client's execution deadline back.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='extension_requests')
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='extension_requests'
    )
    reason = models.TextField()
    requested_days = models.PositiveSmallIntegerField(default=3)
    current_deadline = models.DateTimeField()
    new_deadline = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='reviewed_extension_requests'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Extension for {self.client} ({self.status})"
