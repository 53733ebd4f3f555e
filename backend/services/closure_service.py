"""
Closure Service

Ends the partnership with an approved client once every platform balance
is back to zero.
"""

from decimal import Decimal
from typing import List, Optional
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from .transaction_service import TransactionService
from clients.models import Client, EventLog
from todos.models import ToDo
import logging

logger = logging.getLogger(__name__)

ZERO_TOLERANCE = Decimal('0.01')


class ClosureService(BaseService):

    def get_service_name(self) -> str:
        return "closure_service"

    def verify_zero_balances(self, client_id: int) -> ServiceResult:
        breakdown = TransactionService(self.user).get_client_balance_breakdown(client_id)
        all_zero = all(abs(entry['balance']) < ZERO_TOLERANCE for entry in breakdown.values())
        return self.create_result(
            success=True,
            data={
                'all_zero': all_zero,
                'breakdown': {platform: {'balance': entry['balance']} for platform, entry in breakdown.items()},
            }
        )

    def close_client(self, client_id: int, reason: str, proof_urls: Optional[List[str]] = None,
                     skip_balance_check: bool = False) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if skip_balance_check and not self.user_has_role('ADMIN'):
            return self.create_error_result("Only admins can skip balance verification")

        try:
            client = Client.objects.get(pk=client_id)
        except Client.DoesNotExist:
            return self.create_error_result("Client not found")

        if client.intake_status != Client.STATUS_APPROVED:
            return self.create_error_result(
                f"Cannot close client in {client.intake_status} status. Only APPROVED clients can be closed."
            )

        if not skip_balance_check:
            balances = self.verify_zero_balances(client.id).data
            if not balances['all_zero']:
                non_zero = ', '.join(
                    f"{platform}: ${entry['balance']:.2f}"
                    for platform, entry in balances['breakdown'].items()
                    if abs(entry['balance']) >= ZERO_TOLERANCE
                )
                return self.create_error_result(
                    f"Non-zero balances remain: {non_zero}. All platform balances must be zero before closure."
                )

        proof_urls = list(proof_urls or [])

        try:
            with transaction.atomic():
                now = timezone.now()
                client.intake_status = Client.STATUS_PARTNERSHIP_ENDED
                client.status_changed_at = now
                client.closed_at = now
                client.closure_reason = reason
                client.closure_proof = proof_urls
                client.closed_by = self.user
                client.save()

                log_event(
                    EventLog.STATUS_CHANGE,
                    f"Partnership ended: {reason}",
                    client=client,
                    user=self.user,
                    old_value=Client.STATUS_APPROVED,
                    new_value=Client.STATUS_PARTNERSHIP_ENDED,
                    metadata={
                        'reason': reason,
                        'proof_count': len(proof_urls),
                        'skip_balance_check': skip_balance_check,
                    },
                )

                cancelled = ToDo.objects.filter(
                    client=client, status__in=ToDo.OPEN_STATUSES
                ).update(status=ToDo.STATUS_CANCELLED)
        except Exception as e:
            return self.handle_exception(e, context="close_client", user_error="Failed to close client")

        self.log_service_action("close_client", {'client_id': client.id, 'todos_cancelled': cancelled})
        return self.create_result(success=True, data={'client_id': client.id, 'todos_cancelled': cancelled})

    def get_closure_details(self, client_id: int) -> ServiceResult:
        client = Client.objects.select_related('closed_by').filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")

        return self.create_result(
            success=True,
            data={
                'id': client.id,
                'intake_status': client.intake_status,
                'closed_at': client.closed_at,
                'closure_reason': client.closure_reason,
                'closure_proof': client.closure_proof,
                'closed_by': {'id': client.closed_by.id, 'name': client.closed_by.name} if client.closed_by else None,
            }
        )
