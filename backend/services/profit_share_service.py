"""
Profit Share Service

Rule management and per-transaction profit splits with partners.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional
from django.db.models import Q, Sum
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from partners.models import Partner, ProfitShareDetail, ProfitShareRule
import logging

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

RULE_FIELDS = (
    'name', 'description', 'split_type', 'partner_percent', 'company_percent', 'fixed_amount',
    'applies_to', 'platform_type', 'min_amount', 'max_amount', 'fee_percent', 'fee_fixed',
    'effective_from', 'effective_to', 'priority', 'status',
)


def to_cents(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_fee(gross: Decimal, rule: ProfitShareRule) -> Decimal:
    fee = ZERO
    if rule.fee_fixed:
        fee += rule.fee_fixed
    if rule.fee_percent:
        fee += gross * rule.fee_percent / Decimal('100')
    return to_cents(fee)


def percent_total_exceeded(split_type, partner_percent, company_percent) -> bool:
    if split_type == ProfitShareRule.SPLIT_FIXED:
        return False
    if partner_percent is None or company_percent is None:
        return False
    return Decimal(str(partner_percent)) + Decimal(str(company_percent)) > 100


class ProfitShareService(BaseService):

    def get_service_name(self) -> str:
        return "profit_share_service"

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def create_rule(self, data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied

        name = (data.get('name') or '').strip()
        if not name:
            return self.create_error_result("Rule name is required")
        partner_id = data.get('partner_id')
        if not partner_id:
            return self.create_error_result("Partner is required")
        if not Partner.objects.filter(pk=partner_id).exists():
            return self.create_error_result("Partner not found")

        split_type = data.get('split_type') or ProfitShareRule.SPLIT_PERCENTAGE
        if percent_total_exceeded(split_type, data.get('partner_percent'), data.get('company_percent')):
            return self.create_error_result("Partner % + Company % cannot exceed 100%")

        values = {field: data.get(field) for field in RULE_FIELDS if data.get(field) not in (None, '')}
        values.update(
            name=name,
            split_type=split_type,
            effective_from=data.get('effective_from') or timezone.now(),
        )
        rule = ProfitShareRule.objects.create(partner_id=partner_id, **values)

        self.log_service_action("create_rule", {'rule_id': rule.id, 'partner_id': partner_id})
        return self.create_result(success=True, data=rule)

    def update_rule(self, rule_id: Optional[int], data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not rule_id:
            return self.create_error_result("Rule ID is required")

        rule = ProfitShareRule.objects.filter(pk=rule_id).first()
        if rule is None:
            return self.create_error_result("Rule not found")

        if 'name' in data and not (data.get('name') or '').strip():
            return self.create_error_result("Rule name is required")

        split_type = data.get('split_type', rule.split_type)
        partner_percent = data.get('partner_percent', rule.partner_percent)
        company_percent = data.get('company_percent', rule.company_percent)
        if percent_total_exceeded(split_type, partner_percent, company_percent):
            return self.create_error_result("Partner % + Company % cannot exceed 100%")

        for field in RULE_FIELDS:
            if field in data:
                setattr(rule, field, data[field])
        rule.save()

        self.log_service_action("update_rule", {'rule_id': rule.id})
        return self.create_result(success=True, data=rule)

    def deactivate_rule(self, rule_id: Optional[int]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not rule_id:
            return self.create_error_result("Rule ID is required")

        updated = ProfitShareRule.objects.filter(pk=rule_id).update(status='inactive', updated_at=timezone.now())
        if not updated:
            return self.create_error_result("Rule not found")

        self.log_service_action("deactivate_rule", {'rule_id': rule_id})
        return self.create_result(success=True, data={'rule_id': rule_id, 'status': 'inactive'})

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def find_applicable_rule(self, partner_id: int, transaction_type: str) -> Optional[ProfitShareRule]:
        now = timezone.now()
        return ProfitShareRule.objects.filter(
            Q(effective_to__isnull=True) | Q(effective_to__gte=now),
            Q(applies_to='all') | Q(applies_to=transaction_type),
            partner_id=partner_id,
            status='active',
            effective_from__lte=now,
        ).order_by('-priority', 'id').first()

    def calculate_profit_share(
        self,
        partner_id: int,
        gross_amount,
        transaction_type: str,
        platform_type: Optional[str] = None,
        client=None,
        transaction=None,
        fund_movement=None,
    ) -> Optional[ProfitShareDetail]:
        """
        Split ``gross_amount`` under the partner's best matching rule.

        Returns None when no rule applies; otherwise the persisted detail.
        """
        rule = self.find_applicable_rule(partner_id, transaction_type)
        if rule is None:
            return None

        gross = Decimal(str(gross_amount))
        if rule.min_amount is not None and gross < rule.min_amount:
            return None
        if rule.max_amount is not None and gross > rule.max_amount:
            return None
        if rule.platform_type and platform_type and rule.platform_type != platform_type:
            return None

        fee = calculate_fee(gross, rule)
        net = gross - fee

        if rule.split_type == ProfitShareRule.SPLIT_FIXED:
            partner_amount = rule.fixed_amount or ZERO
            company_amount = net - partner_amount
        else:
            partner_amount = net * (rule.partner_percent or ZERO) / Decimal('100')
            company_amount = net * (rule.company_percent or ZERO) / Decimal('100')

        detail = ProfitShareDetail.objects.create(
            partner_id=partner_id,
            rule=rule,
            client=client,
            transaction=transaction,
            fund_movement=fund_movement,
            transaction_type=transaction_type,
            gross_amount=to_cents(gross),
            fee_amount=fee,
            net_amount=to_cents(net),
            partner_amount=to_cents(partner_amount),
            company_amount=to_cents(company_amount),
        )
        logger.info(
            f"Profit share {detail.id}: partner {partner_id} gets ${detail.partner_amount} of ${detail.gross_amount}"
        )
        return detail

    def get_partner_profit_summary(self, partner_id: int) -> ServiceResult:
        details = ProfitShareDetail.objects.filter(partner_id=partner_id).select_related('rule', 'client')

        def total(queryset, field):
            return queryset.aggregate(total=Sum(field))['total'] or ZERO

        return self.create_result(
            success=True,
            data={
                'details': list(details),
                'total_partner_amount': total(details, 'partner_amount'),
                'total_company_amount': total(details, 'company_amount'),
                'total_fees': total(details, 'fee_amount'),
                'pending_amount': total(details.filter(status='pending'), 'partner_amount'),
                'paid_amount': total(details.filter(status='paid'), 'partner_amount'),
                'transaction_count': details.count(),
            }
        )

    # ------------------------------------------------------------------
    # Payouts
    # ------------------------------------------------------------------

    def mark_profit_share_paid(self, detail_id: Optional[int]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not detail_id:
            return self.create_error_result("Detail ID is required")

        updated = ProfitShareDetail.objects.filter(pk=detail_id).update(
            status='paid', paid_at=timezone.now(), paid_by=self.user
        )
        if not updated:
            return self.create_error_result("Profit share detail not found")

        self.log_service_action("mark_profit_share_paid", {'detail_id': detail_id})
        return self.create_result(success=True, data={'detail_id': detail_id})

    def bulk_mark_profit_shares_paid(self, detail_ids: Iterable[int]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not detail_ids:
            return self.create_error_result("No details selected")

        updated = ProfitShareDetail.objects.filter(id__in=detail_ids, status='pending').update(
            status='paid', paid_at=timezone.now(), paid_by=self.user
        )
        self.log_service_action("bulk_mark_profit_shares_paid", {'updated': updated})
        return self.create_result(success=True, data={'updated': updated})
