from decimal import Decimal
from django.conf import settings
from django.db import models

from clients.platforms import PLATFORM_CHOICES


class FundMovement(models.Model):
    """
    Money moved between client platforms, recorded by back office and
    confirmed during settlement review.
    """
    TYPE_CHOICES = [
        ('internal', 'Internal'),
        ('external', 'External'),
    ]
    FLOW_SAME_CLIENT = 'same_client'
    FLOW_DIFFERENT_CLIENTS = 'different_clients'
    FLOW_EXTERNAL = 'external'
    FLOW_TYPE_CHOICES = [
        (FLOW_SAME_CLIENT, 'Same Client'),
        (FLOW_DIFFERENT_CLIENTS, 'Different Clients'),
        (FLOW_EXTERNAL, 'External'),
    ]
    METHOD_CHOICES = [
        ('zelle', 'Zelle'),
        ('wire', 'Wire'),
        ('transfer', 'Transfer'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]
    SETTLEMENT_PENDING_REVIEW = 'PENDING_REVIEW'
    SETTLEMENT_CONFIRMED = 'CONFIRMED'
    SETTLEMENT_REJECTED = 'REJECTED'
    SETTLEMENT_STATUS_CHOICES = [
        (SETTLEMENT_PENDING_REVIEW, 'Pending Review'),
        (SETTLEMENT_CONFIRMED, 'Confirmed'),
        (SETTLEMENT_REJECTED, 'Rejected'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    flow_type = models.CharField(max_length=20, choices=FLOW_TYPE_CHOICES)
    from_client = models.ForeignKey(
        'clients.Client', on_delete=models.PROTECT, related_name='fund_movements_from'
    )
    to_client = models.ForeignKey(
        'clients.Client', on_delete=models.PROTECT, null=True, blank=True, related_name='fund_movements_to'
    )
    # Display names ("Bally Bet"); ledger rows carry the platform code
    from_platform = models.CharField(max_length=50)
    to_platform = models.CharField(max_length=50)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    fee = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    method = models.CharField(max_length=20, choices=METHOD_CHOICES, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed')
    notes = models.TextField(blank=True, null=True)

    settlement_status = models.CharField(
        max_length=20, choices=SETTLEMENT_STATUS_CHOICES, default=SETTLEMENT_PENDING_REVIEW, db_index=True
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_movements'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_notes = models.TextField(blank=True, null=True)

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='recorded_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"${self.amount} {self.from_platform} -> {self.to_platform}"


class Transaction(models.Model):
    """
    Append-only ledger row. Rows are never edited except to mark them
    reversed; a reversal is recorded as a new ADJUSTMENT row.
    """
    DEPOSIT = 'DEPOSIT'
    WITHDRAWAL = 'WITHDRAWAL'
    INTERNAL_TRANSFER = 'INTERNAL_TRANSFER'
    FEE = 'FEE'
    ADJUSTMENT = 'ADJUSTMENT'
    COMMISSION_PAYOUT = 'COMMISSION_PAYOUT'

    TYPE_CHOICES = [
        (DEPOSIT, 'Deposit'),
        (WITHDRAWAL, 'Withdrawal'),
        (INTERNAL_TRANSFER, 'Internal Transfer'),
        (FEE, 'Fee'),
        (ADJUSTMENT, 'Adjustment'),
        (COMMISSION_PAYOUT, 'Commission Payout'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_REVERSED = 'reversed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REVERSED, 'Reversed'),
    ]

    type = models.CharField(max_length=30, choices=TYPE_CHOICES, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED, db_index=True)

    client = models.ForeignKey(
        'clients.Client', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions'
    )
    platform_type = models.CharField(max_length=20, choices=PLATFORM_CHOICES, blank=True, null=True)
    fund_movement = models.ForeignKey(
        FundMovement, on_delete=models.PROTECT, null=True, blank=True, related_name='transactions'
    )
    bonus_pool = models.ForeignKey(
        'commission.BonusPool', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions'
    )
    description = models.CharField(max_length=500, blank=True, null=True)
    reference = models.CharField(max_length=100, blank=True, null=True)
    document_url = models.CharField(max_length=500, blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='recorded_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['client', 'status'], name='txn_client_status_idx'),
        ]

    def __str__(self):
        return f"{self.type} ${self.amount} ({self.status})"

    @property
    def signed_amount(self):
        """Effect on the client's balance: credits positive, debits negative."""
        if self.type in (self.DEPOSIT, self.INTERNAL_TRANSFER):
            return self.amount
        if self.type in (self.WITHDRAWAL, self.FEE):
            return -self.amount
        return Decimal('0.00')
