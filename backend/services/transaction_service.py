"""
Transaction Service

Append-only money ledger. Balances are always derived from completed rows;
nothing here edits an amount after it is written.
"""

from decimal import Decimal
from typing import Dict, List, Optional
from django.db import transaction
from django.db.models import Q

from .base_service import BaseService, ServiceResult
from clients.models import Client
from clients.platforms import platform_code_from_name
from commission.models import BonusAllocation
from funds.models import FundMovement, Transaction
import logging

logger = logging.getLogger(__name__)

UNASSIGNED = 'UNASSIGNED'


class TransactionService(BaseService):
    """
    Ledger writes and balance queries.
    """

    def get_service_name(self) -> str:
        return "transaction_service"

    def record_transaction(
        self,
        type: str,
        amount,
        client: Optional[Client] = None,
        platform_type: Optional[str] = None,
        description: Optional[str] = None,
        fund_movement: Optional[FundMovement] = None,
        bonus_pool=None,
        reference: Optional[str] = None,
        document_url: Optional[str] = None,
        metadata: Optional[Dict] = None,
        status: str = Transaction.STATUS_COMPLETED,
        currency: str = 'USD',
    ) -> Transaction:
        row = Transaction.objects.create(
            type=type,
            amount=Decimal(str(amount)),
            currency=currency,
            status=status,
            client=client,
            platform_type=platform_type,
            fund_movement=fund_movement,
            bonus_pool=bonus_pool,
            description=description,
            reference=reference,
            document_url=document_url,
            metadata=metadata or {},
            recorded_by=self.user,
        )
        logger.info(f"Ledger {row.type} ${row.amount} recorded (id={row.id}, client={client.id if client else None})")
        return row

    def record_transaction_from_fund_movement(self, movement: FundMovement) -> List[Transaction]:
        """
        Write the ledger rows for one fund movement.

        external        -> DEPOSIT into to_client, or WITHDRAWAL out of from_client
        same_client     -> one INTERNAL_TRANSFER on the destination platform
        different_clients -> WITHDRAWAL from the source plus DEPOSIT to the destination
        A FEE row against the source follows whenever a fee was charged.
        """
        from_code = platform_code_from_name(movement.from_platform)
        to_code = platform_code_from_name(movement.to_platform)
        common = dict(fund_movement=movement, currency=movement.currency, reference=str(movement.id))
        rows = []

        if movement.flow_type == FundMovement.FLOW_EXTERNAL:
            if movement.to_client_id:
                rows.append(self.record_transaction(
                    Transaction.DEPOSIT, movement.amount,
                    client=movement.to_client, platform_type=to_code,
                    description="External deposit", **common
                ))
            else:
                rows.append(self.record_transaction(
                    Transaction.WITHDRAWAL, movement.amount,
                    client=movement.from_client, platform_type=from_code,
                    description="External withdrawal", **common
                ))
        elif movement.flow_type == FundMovement.FLOW_SAME_CLIENT:
            rows.append(self.record_transaction(
                Transaction.INTERNAL_TRANSFER, movement.amount,
                client=movement.from_client, platform_type=to_code,
                description=f"Internal transfer: {movement.from_platform} → {movement.to_platform}",
                metadata={'from_platform': from_code, 'to_platform': to_code}, **common
            ))
        else:
            rows.append(self.record_transaction(
                Transaction.WITHDRAWAL, movement.amount,
                client=movement.from_client, platform_type=from_code,
                description="Transfer to another client", **common
            ))
            rows.append(self.record_transaction(
                Transaction.DEPOSIT, movement.amount,
                client=movement.to_client, platform_type=to_code,
                description="Transfer from another client", **common
            ))

        if movement.fee and movement.fee > 0:
            rows.append(self.record_transaction(
                Transaction.FEE, movement.fee,
                client=movement.from_client, platform_type=from_code,
                description="Transfer fee", **common
            ))

        return rows

    def record_commission_transaction(self, allocation: BonusAllocation) -> Transaction:
        description = f"Commission: {allocation.type}"
        if allocation.slices:
            description += f" ({allocation.slices} slices)"
        return self.record_transaction(
            Transaction.COMMISSION_PAYOUT,
            allocation.amount,
            client=allocation.bonus_pool.client,
            bonus_pool=allocation.bonus_pool,
            description=description,
            reference=str(allocation.id),
            metadata={'allocation_id': allocation.id, 'agent_id': allocation.agent_id},
        )

    def get_client_balance(self, client_id: int, platform_type: Optional[str] = None) -> Decimal:
        rows = Transaction.objects.filter(client_id=client_id, status=Transaction.STATUS_COMPLETED)
        if platform_type:
            rows = rows.filter(platform_type=platform_type)
        return sum((row.signed_amount for row in rows), Decimal('0.00'))

    def get_client_balance_breakdown(self, client_id: int) -> Dict[str, Dict[str, Decimal]]:
        """
        Deposits, withdrawals, fees and the resulting balance per platform.

        Rows without a platform are grouped under UNASSIGNED.
        """
        breakdown: Dict[str, Dict[str, Decimal]] = {}
        rows = Transaction.objects.filter(client_id=client_id, status=Transaction.STATUS_COMPLETED)
        for row in rows:
            entry = breakdown.setdefault(row.platform_type or UNASSIGNED, {
                'deposits': Decimal('0.00'),
                'withdrawals': Decimal('0.00'),
                'fees': Decimal('0.00'),
                'balance': Decimal('0.00'),
            })
            if row.type in (Transaction.DEPOSIT, Transaction.INTERNAL_TRANSFER):
                entry['deposits'] += row.amount
            elif row.type == Transaction.WITHDRAWAL:
                entry['withdrawals'] += row.amount
            elif row.type == Transaction.FEE:
                entry['fees'] += row.amount
            entry['balance'] += row.signed_amount
        return breakdown

    def reverse_transaction(self, transaction_id: int, reason: str) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        try:
            with transaction.atomic():
                try:
                    original = Transaction.objects.select_for_update().get(pk=transaction_id)
                except Transaction.DoesNotExist:
                    return self.create_error_result("Transaction not found")

                if original.status == Transaction.STATUS_REVERSED:
                    return self.create_error_result("Transaction already reversed")

                original.status = Transaction.STATUS_REVERSED
                original.save(update_fields=['status'])

                adjustment = self.record_transaction(
                    Transaction.ADJUSTMENT,
                    original.amount,
                    client=original.client,
                    platform_type=original.platform_type,
                    currency=original.currency,
                    description=f"Reversal of {original.id}: {reason}",
                    reference=str(original.id),
                    metadata={'reversed_transaction_id': original.id, 'reason': reason},
                )
        except Exception as e:
            return self.handle_exception(e, context="reverse_transaction", user_error="Failed to reverse transaction")

        self.log_service_action("reverse_transaction", {'transaction_id': original.id, 'adjustment_id': adjustment.id})
        return self.create_result(success=True, data={'transaction_id': original.id, 'adjustment_id': adjustment.id})

    def get_transaction_history(self, filters: Optional[Dict] = None, limit: int = 50):
        filters = filters or {}
        rows = Transaction.objects.select_related('client', 'recorded_by')

        if filters.get('client_id'):
            rows = rows.filter(client_id=filters['client_id'])
        if filters.get('type'):
            rows = rows.filter(type=filters['type'])
        if filters.get('status'):
            rows = rows.filter(status=filters['status'])
        if filters.get('platform_type'):
            rows = rows.filter(platform_type=filters['platform_type'])
        if filters.get('date_from'):
            rows = rows.filter(created_at__gte=filters['date_from'])
        if filters.get('date_to'):
            rows = rows.filter(created_at__lte=filters['date_to'])
        if filters.get('search'):
            term = filters['search']
            rows = rows.filter(Q(description__icontains=term) | Q(reference__icontains=term))

        return list(rows[:limit])
