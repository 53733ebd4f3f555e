"""
Fund Movement Service

Records money moving between client platforms and drives the settlement
review (PENDING_REVIEW -> CONFIRMED / REJECTED).
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from .profit_share_service import ProfitShareService
from .transaction_service import TransactionService
from clients.models import Client, EventLog
from clients.platforms import is_valid_platform_name
from funds.models import FundMovement, Transaction
import logging

logger = logging.getLogger(__name__)

VALID_METHODS = [choice[0] for choice in FundMovement.METHOD_CHOICES]
PROFIT_SHARE_TYPES = {
    Transaction.DEPOSIT: 'deposits',
    Transaction.WITHDRAWAL: 'withdrawals',
}
STAFF_REQUIRED = "Unauthorized — admin or backoffice role required"


class FundMovementService(BaseService):
    """
    Fund movement recording and settlement review.
    """

    def get_service_name(self) -> str:
        return "fund_movement_service"

    def record_fund_movement(self, data: Dict) -> ServiceResult:
        """
        Validate and record a movement plus its ledger rows.

        ``data`` keys: flow_type, from_client_id, to_client_id, from_platform,
        to_platform (display names), amount, fee, method, currency, notes.
        """
        denied = self.require_roles(self.STAFF_ROLES, error=STAFF_REQUIRED)
        if denied:
            return denied

        try:
            amount = Decimal(str(data.get('amount')))
        except (InvalidOperation, TypeError, ValueError):
            amount = Decimal('0')
        if amount <= 0:
            return self.create_error_result("Amount must be greater than 0")

        from_platform = data.get('from_platform')
        to_platform = data.get('to_platform')
        if not is_valid_platform_name(from_platform):
            return self.create_error_result("Invalid source platform")
        if not is_valid_platform_name(to_platform):
            return self.create_error_result("Invalid destination platform")

        method = data.get('method')
        if method and method not in VALID_METHODS:
            return self.create_error_result("Invalid transfer method")

        flow_type = data.get('flow_type') or FundMovement.FLOW_SAME_CLIENT

        from_client_id = data.get('from_client_id')
        if not from_client_id:
            return self.create_error_result("Source client is required")
        from_client = Client.objects.filter(pk=from_client_id).first()
        if from_client is None:
            return self.create_error_result("Source client not found")

        to_client = None
        if flow_type == FundMovement.FLOW_SAME_CLIENT:
            to_client = from_client
        else:
            to_client_id = data.get('to_client_id')
            if flow_type == FundMovement.FLOW_DIFFERENT_CLIENTS and not to_client_id:
                return self.create_error_result("Destination client is required for this flow type")
            if to_client_id:
                to_client = Client.objects.filter(pk=to_client_id).first()
                if to_client is None:
                    return self.create_error_result("Destination client not found")

        fee = data.get('fee')
        fee = Decimal(str(fee)) if fee not in (None, '') else None

        try:
            with transaction.atomic():
                movement = FundMovement.objects.create(
                    type='internal' if flow_type != FundMovement.FLOW_EXTERNAL else 'external',
                    flow_type=flow_type,
                    from_client=from_client,
                    to_client=to_client,
                    from_platform=from_platform,
                    to_platform=to_platform,
                    amount=amount,
                    currency=data.get('currency') or 'USD',
                    fee=fee,
                    method=method or None,
                    notes=data.get('notes'),
                    recorded_by=self.user,
                )
                rows = TransactionService(self.user).record_transaction_from_fund_movement(movement)
                self._apply_profit_share(movement, rows)

                log_event(
                    EventLog.TRANSACTION_CREATED,
                    f"Fund movement recorded: ${amount} {from_platform} → {to_platform}",
                    client=from_client,
                    user=self.user,
                    metadata={
                        'fund_movement_id': movement.id,
                        'flow_type': flow_type,
                        'amount': str(amount),
                        'to_client_id': to_client.id if to_client else None,
                    },
                )
        except Exception as e:
            return self.handle_exception(e, context="record_fund_movement", user_error="Failed to record fund movement")

        self.log_service_action("record_fund_movement", {'fund_movement_id': movement.id, 'amount': str(amount)})
        return self.create_result(
            success=True,
            data={'fund_movement_id': movement.id, 'transaction_ids': [row.id for row in rows]}
        )

    def confirm_settlement(self, movement_id: int, notes: Optional[str] = None) -> ServiceResult:
        return self._review(movement_id, FundMovement.SETTLEMENT_CONFIRMED, notes, verb="confirm")

    def reject_settlement(self, movement_id: int, notes: Optional[str]) -> ServiceResult:
        if not notes or not notes.strip():
            return self.create_error_result("Rejection reason is required")
        return self._review(movement_id, FundMovement.SETTLEMENT_REJECTED, notes, verb="reject")

    def bulk_confirm_settlements(self, movement_ids: Iterable[int]) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES, error=STAFF_REQUIRED)
        if denied:
            return denied
        if not movement_ids:
            return self.create_error_result("No settlements selected")

        confirmed = 0
        for movement_id in movement_ids:
            result = self.confirm_settlement(movement_id)
            if result.success:
                confirmed += 1
            else:
                logger.info(f"Skipped settlement {movement_id}: {result.error}")

        return self.create_result(success=True, data={'confirmed': confirmed})

    def _apply_profit_share(self, movement: FundMovement, rows):
        """Split deposits and withdrawals of partner-referred clients."""
        for row in rows:
            applies_to = PROFIT_SHARE_TYPES.get(row.type)
            if applies_to is None or row.client is None or row.client.partner_id is None:
                continue
            ProfitShareService(self.user).calculate_profit_share(
                row.client.partner_id,
                row.amount,
                applies_to,
                platform_type=row.platform_type,
                client=row.client,
                transaction=row,
                fund_movement=movement,
            )

    def _review(self, movement_id: int, new_status: str, notes: Optional[str], verb: str) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES, error=STAFF_REQUIRED)
        if denied:
            return denied

        with transaction.atomic():
            try:
                movement = FundMovement.objects.select_for_update().get(pk=movement_id)
            except FundMovement.DoesNotExist:
                return self.create_error_result("Fund movement not found")

            old_status = movement.settlement_status
            if old_status != FundMovement.SETTLEMENT_PENDING_REVIEW:
                return self.create_error_result(f"Cannot {verb} — current status is {old_status}")

            movement.settlement_status = new_status
            movement.reviewed_by = self.user
            movement.reviewed_at = timezone.now()
            movement.review_notes = notes
            movement.save(update_fields=['settlement_status', 'reviewed_by', 'reviewed_at', 'review_notes', 'updated_at'])

            description = f"Settlement {new_status.lower()}: ${movement.amount} {movement.from_platform} → {movement.to_platform}"
            if notes:
                description += f" ({notes})"
            log_event(
                EventLog.STATUS_CHANGE,
                description,
                client=movement.from_client,
                user=self.user,
                old_value=old_status,
                new_value=new_status,
                metadata={'fund_movement_id': movement.id},
            )

        self.log_service_action(f"{verb}_settlement", {'fund_movement_id': movement.id})
        return self.create_result(
            success=True,
            data={'fund_movement_id': movement.id, 'settlement_status': new_status}
        )
