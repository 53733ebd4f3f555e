from decimal import Decimal
from django.conf import settings
from django.db import models


class BonusPool(models.Model):
    """
    Commission pool created when a client is approved.

    A fixed direct bonus goes to the closing agent; the star pool is split in
    slices up the closer's supervisor chain.
    """
    STATUS_PENDING = 'pending'
    STATUS_DISTRIBUTED = 'distributed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_DISTRIBUTED, 'Distributed'),
    ]

    client = models.OneToOneField('clients.Client', on_delete=models.CASCADE, related_name='bonus_pool')
    closer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='closed_pools')

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('400.00'))
    direct_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('200.00'))
    star_pool_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('200.00'))
    distributed_slices = models.PositiveSmallIntegerField(default=0)
    recycled_slices = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    hierarchy_snapshot = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Bonus pool for {self.client} ({self.status})"


class BonusAllocation(models.Model):
    """
    One agent's share of a bonus pool.
    """
    TYPE_DIRECT = 'direct'
    TYPE_STAR_SLICE = 'star_slice'
    TYPE_BACKFILL = 'backfill'

    TYPE_CHOICES = [
        (TYPE_DIRECT, 'Direct Bonus'),
        (TYPE_STAR_SLICE, 'Star Slice'),
        (TYPE_BACKFILL, 'Backfill'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_PAID = 'paid'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
    ]

    bonus_pool = models.ForeignKey(BonusPool, on_delete=models.CASCADE, related_name='allocations')
    agent = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bonus_allocations')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    slices = models.PositiveSmallIntegerField(default=0)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    star_level_at_time = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', 'id']
        indexes = [
            models.Index(fields=['agent', 'status'], name='allocation_agent_status_idx'),
        ]

    def __str__(self):
        return f"{self.agent} {self.type} ${self.amount}"
