from decimal import Decimal
from django.conf import settings
from django.db import models

from clients.platforms import PLATFORM_CHOICES


class Partner(models.Model):
    """
    External party that refers clients and shares in their profit.
    """
    TYPE_CHOICES = [
        ('referral', 'Referral'),
        ('affiliate', 'Affiliate'),
        ('strategic', 'Strategic'),
        ('investor', 'Investor'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=255, db_index=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='referral')
    contact_name = models.CharField(max_length=255, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class ProfitShareRule(models.Model):
    """
    How gross revenue from a partner's clients is split.

    The highest-priority active rule in effect wins; ``applies_to`` narrows a
    rule to deposits, withdrawals or commissions.
    """
    SPLIT_PERCENTAGE = 'percentage'
    SPLIT_FIXED = 'fixed'

    SPLIT_TYPE_CHOICES = [
        (SPLIT_PERCENTAGE, 'Percentage'),
        (SPLIT_FIXED, 'Fixed Amount'),
    ]
    APPLIES_TO_CHOICES = [
        ('all', 'All Transactions'),
        ('deposits', 'Deposits'),
        ('withdrawals', 'Withdrawals'),
        ('commissions', 'Commissions'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    partner = models.ForeignKey(Partner, on_delete=models.CASCADE, related_name='rules')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    split_type = models.CharField(max_length=20, choices=SPLIT_TYPE_CHOICES, default=SPLIT_PERCENTAGE)
    partner_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    company_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    fixed_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    applies_to = models.CharField(max_length=20, choices=APPLIES_TO_CHOICES, default='all')
    platform_type = models.CharField(max_length=20, choices=PLATFORM_CHOICES, blank=True, null=True)
    min_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    fee_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    fee_fixed = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    effective_from = models.DateTimeField()
    effective_to = models.DateTimeField(null=True, blank=True)
    priority = models.IntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-priority', 'name']

    def __str__(self):
        return f"{self.partner}: {self.name}"


class ProfitShareDetail(models.Model):
    """
    The computed split for one transaction under one rule.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
    ]

    partner = models.ForeignKey(Partner, on_delete=models.CASCADE, related_name='profit_shares')
    rule = models.ForeignKey(ProfitShareRule, on_delete=models.PROTECT, related_name='details')
    client = models.ForeignKey(
        'clients.Client', on_delete=models.SET_NULL, null=True, blank=True, related_name='profit_shares'
    )
    transaction = models.ForeignKey(
        'funds.Transaction', on_delete=models.SET_NULL, null=True, blank=True, related_name='profit_shares'
    )
    fund_movement = models.ForeignKey(
        'funds.FundMovement', on_delete=models.SET_NULL, null=True, blank=True, related_name='profit_shares'
    )
    transaction_type = models.CharField(max_length=20, default='all')
    gross_amount = models.DecimalField(max_digits=12, decimal_places=2)
    fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    net_amount = models.DecimalField(max_digits=12, decimal_places=2)
    partner_amount = models.DecimalField(max_digits=12, decimal_places=2)
    company_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.partner} ${self.partner_amount} ({self.status})"
