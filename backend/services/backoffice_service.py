"""
Backoffice Service

Staff review actions: prequalification decisions, final intake approval and
the thin wrappers that move a client through the pipeline.
"""

from datetime import timedelta
from typing import Optional
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from .status_transition_service import StatusTransitionService
from clients.models import Client, ClientPlatform, EventLog
from clients.platforms import BETMGM
from notifications.services import NotificationService
from todos.models import ToDo
import logging

logger = logging.getLogger(__name__)


class BackofficeService(BaseService):
    """
    Every operation here requires an ADMIN or BACKOFFICE actor.
    """

    def get_service_name(self) -> str:
        return "backoffice_service"

    def _transition(self, client_id: int, new_status: str, reason: Optional[str] = None,
                    deadline_days: Optional[int] = None) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied
        return StatusTransitionService(self.user).transition_status(
            client_id, new_status, reason=reason, deadline_days=deadline_days
        )

    # ------------------------------------------------------------------
    # Prequalification
    # ------------------------------------------------------------------

    def approve_prequal(self, client_id: int) -> ServiceResult:
        """
        Clear a submitted prequalification.

        A PENDING client stays PENDING with BetMGM verified, which puts it in
        phase 2 and ready for a phone. A client sent to PREQUAL_REVIEW moves
        on to PREQUAL_APPROVED.
        """
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        client = Client.objects.filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")

        result = self.execute_with_transaction(self._approve_prequal, client)
        if result.success:
            self.log_service_action("approve_prequal", {'client_id': client.id})
        return result

    def _approve_prequal(self, client: Client) -> ServiceResult:
        verified = ClientPlatform.objects.filter(
            client=client,
            platform_type=BETMGM,
            status=ClientPlatform.STATUS_PENDING_REVIEW,
        ).update(
            status=ClientPlatform.STATUS_VERIFIED,
            reviewed_by=self.user,
            reviewed_at=timezone.now(),
        )

        if client.intake_status != Client.STATUS_PENDING:
            if verified:
                logger.info(f"BetMGM verified during prequal approval of client {client.id}")
            return StatusTransitionService(self.user).transition_status(client.id, Client.STATUS_PREQUAL_APPROVED)

        if not verified:
            return self.create_error_result("BetMGM platform not in PENDING_REVIEW state")

        log_event(
            EventLog.PLATFORM_STATUS_CHANGE,
            "Prequalification approved: BetMGM verified",
            client=client,
            user=self.user,
            old_value=ClientPlatform.STATUS_PENDING_REVIEW,
            new_value=ClientPlatform.STATUS_VERIFIED,
            metadata={'platform': BETMGM},
        )
        return self.create_result(
            success=True,
            data={
                'client_id': client.id,
                'old_status': client.intake_status,
                'new_status': client.intake_status,
                'betmgm_verified': True,
            }
        )

    def reject_prequal(self, client_id: int, reason: str) -> ServiceResult:
        return self._transition(client_id, Client.STATUS_REJECTED, reason=reason)

    def reject_prequal_with_retry(self, client_id: int, reason: Optional[str] = None) -> ServiceResult:
        """
        Send BetMGM back to the agent for resubmission after a cooldown.

        The client keeps its current intake status.
        """
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        client = Client.objects.select_related('agent').filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")

        platform = ClientPlatform.objects.filter(client=client, platform_type=BETMGM).first()
        if platform is None or platform.status != ClientPlatform.STATUS_PENDING_REVIEW:
            return self.create_error_result("BetMGM platform not in PENDING_REVIEW state")

        cooldown = settings.MAESTRO['BETMGM_RETRY_COOLDOWN_HOURS']
        now = timezone.now()

        try:
            with transaction.atomic():
                platform.status = ClientPlatform.STATUS_RETRY_PENDING
                platform.retry_after = now + timedelta(hours=cooldown)
                platform.review_notes = reason
                platform.reviewed_by = self.user
                platform.reviewed_at = now
                platform.retry_count += 1
                platform.save(update_fields=[
                    'status', 'retry_after', 'review_notes', 'reviewed_by', 'reviewed_at', 'retry_count', 'updated_at'
                ])

                description = "BetMGM rejected with retry"
                if reason:
                    description += f": {reason}"
                log_event(
                    EventLog.PLATFORM_STATUS_CHANGE,
                    description,
                    client=client,
                    user=self.user,
                    old_value=ClientPlatform.STATUS_PENDING_REVIEW,
                    new_value=ClientPlatform.STATUS_RETRY_PENDING,
                    metadata={'retry_after': platform.retry_after.isoformat(), 'retry_count': platform.retry_count},
                )
        except Exception as e:
            return self.handle_exception(e, context="reject_prequal_with_retry",
                                         user_error="Failed to reject BetMGM with retry")

        self.log_service_action("reject_prequal_with_retry", {'client_id': client.id})

        if client.agent_id:
            message = f"BetMGM for {client.name} needs to be resubmitted. You can retry after {cooldown} hours."
            if reason:
                message += f" Reason: {reason}"
            try:
                NotificationService.create_notification(
                    recipient=client.agent,
                    notification_type=EventLog.PLATFORM_STATUS_CHANGE,
                    title="BetMGM needs resubmission",
                    message=message,
                    link=f"/agent/new-client?client={client.id}",
                    client=client,
                )
            except Exception as e:
                logger.warning(f"BetMGM retry notification failed for client {client.id}: {e}")

        return self.create_result(
            success=True,
            data={'client_id': client.id, 'retry_after': platform.retry_after, 'retry_count': platform.retry_count}
        )

    # ------------------------------------------------------------------
    # Final intake decision
    # ------------------------------------------------------------------

    def approve_client_intake(self, client_id: int) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        client = Client.objects.filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")
        if client.intake_status != Client.STATUS_READY_FOR_APPROVAL:
            return self.create_error_result("Client is not ready for approval")

        result = StatusTransitionService(self.user).transition_status(client.id, Client.STATUS_APPROVED)
        if result.success:
            log_event(
                EventLog.APPROVAL,
                f"Client intake approved: {client.name}",
                client=client,
                user=self.user,
            )
        return result

    def reject_client_intake(self, client_id: int, reason: str) -> ServiceResult:
        result = self._transition(client_id, Client.STATUS_REJECTED, reason=reason)
        if result.success:
            log_event(
                EventLog.REJECTION,
                f"Client intake rejected: {reason}" if reason else "Client intake rejected",
                client=Client.objects.get(pk=client_id),
                user=self.user,
            )
        return result

    # ------------------------------------------------------------------
    # Pipeline wrappers
    # ------------------------------------------------------------------

    def change_client_status(self, client_id: int, new_status: str, reason: Optional[str] = None) -> ServiceResult:
        return self._transition(client_id, new_status, reason=reason)

    def issue_phone(self, client_id: int) -> ServiceResult:
        return self._transition(client_id, Client.STATUS_PHONE_ISSUED)

    def start_execution(self, client_id: int, deadline_days: Optional[int] = None) -> ServiceResult:
        return self._transition(client_id, Client.STATUS_IN_EXECUTION, deadline_days=deadline_days)

    def request_more_info(self, client_id: int, reason: str) -> ServiceResult:
        return self._transition(client_id, Client.STATUS_NEEDS_MORE_INFO, reason=reason)

    def resume_execution(self, client_id: int, days: int = 3) -> ServiceResult:
        return self._transition(
            client_id,
            Client.STATUS_IN_EXECUTION,
            reason=f"Resumed execution with {days} business day deadline",
            deadline_days=days,
        )

    def get_verification_task_details(self, client_id: int) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        client = Client.objects.select_related('agent', 'partner').filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")

        return self.create_result(
            success=True,
            data={
                'client': client,
                'platforms': [platform for platform in client.platforms.all() if platform.screenshots],
                'todos': list(client.todos.filter(status__in=ToDo.OPEN_STATUSES).select_related('assigned_to')),
                'events': list(client.events.select_related('user')[:20]),
            }
        )
