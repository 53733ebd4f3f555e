"""
BetMGM Service

BetMGM is checked during prequalification, so it has its own manual
verification path and a retry loop with a cooldown.
"""

from typing import List, Optional
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import Client, ClientPlatform, EventLog
from clients.platforms import BETMGM
from notifications.services import NotificationService
import logging

logger = logging.getLogger(__name__)


def get_betmgm_platform(client_id: int) -> Optional[ClientPlatform]:
    return ClientPlatform.objects.filter(client_id=client_id, platform_type=BETMGM).first()


class BetMGMService(BaseService):

    def get_service_name(self) -> str:
        return "betmgm_service"

    def verify_betmgm_manual(self, client_id: int) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES, error="Only backoffice or admin can verify BetMGM accounts")
        if denied:
            return denied

        platform = get_betmgm_platform(client_id)
        if platform is None:
            return self.create_error_result("BetMGM platform record not found")

        if platform.status == ClientPlatform.STATUS_VERIFIED:
            result = self.create_result(success=True, data={'status': platform.status})
            result.add_meta('message', "BetMGM is already verified")
            return result

        old_status = platform.status
        try:
            with transaction.atomic():
                platform.status = ClientPlatform.STATUS_VERIFIED
                platform.reviewed_by = self.user
                platform.reviewed_at = timezone.now()
                platform.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'updated_at'])

                log_event(
                    EventLog.PLATFORM_STATUS_CHANGE,
                    "BetMGM account manually verified by backoffice",
                    client=platform.client,
                    user=self.user,
                    old_value=old_status,
                    new_value=ClientPlatform.STATUS_VERIFIED,
                )
        except Exception as e:
            return self.handle_exception(e, context="verify_betmgm_manual", user_error="Failed to verify BetMGM account")

        self.log_service_action("verify_betmgm_manual", {'client_id': client_id})
        result = self.create_result(success=True, data={'status': platform.status})
        result.add_meta('message', "BetMGM account verified successfully")
        return result

    def check_betmgm_status(self, client_id: int) -> ServiceResult:
        platform = get_betmgm_platform(client_id)
        status = platform.status if platform else ClientPlatform.STATUS_NOT_STARTED
        return self.create_result(
            success=True,
            data={'status': status, 'verified': status == ClientPlatform.STATUS_VERIFIED}
        )

    def retry_betmgm_submission(self, client_id: int, agent_result: str, screenshots: List[str]) -> ServiceResult:
        """
        Agent resubmits BetMGM evidence after a reject-with-retry decision.
        """
        if not self.user:
            return self.create_error_result("You must be logged in")

        client = Client.objects.filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")
        if client.agent_id != self.user.id:
            return self.create_error_result("You are not assigned to this client")

        platform = get_betmgm_platform(client.id)
        if platform is None:
            return self.create_error_result("BetMGM platform record not found")
        if platform.status != ClientPlatform.STATUS_RETRY_PENDING:
            return self.create_error_result("BetMGM is not in retry-pending state")
        if platform.retry_after and platform.retry_after > timezone.now():
            return self.create_error_result("Retry cooldown has not expired yet")
        if not screenshots:
            return self.create_error_result("At least one screenshot is required")

        attempt = platform.retry_count + 1
        try:
            with transaction.atomic():
                platform.status = ClientPlatform.STATUS_PENDING_REVIEW
                platform.screenshots = list(screenshots)
                platform.agent_result = agent_result
                platform.retry_after = None
                platform.retry_count = attempt
                platform.save(update_fields=[
                    'status', 'screenshots', 'agent_result', 'retry_after', 'retry_count', 'updated_at'
                ])

                log_event(
                    EventLog.PLATFORM_STATUS_CHANGE,
                    f"BetMGM resubmitted by agent (attempt {attempt}, agent result: {agent_result})",
                    client=client,
                    user=self.user,
                    old_value=ClientPlatform.STATUS_RETRY_PENDING,
                    new_value=ClientPlatform.STATUS_PENDING_REVIEW,
                )
        except Exception as e:
            return self.handle_exception(e, context="retry_betmgm_submission", user_error="Failed to resubmit BetMGM")

        self.log_service_action("retry_betmgm_submission", {'client_id': client.id, 'attempt': attempt})

        try:
            NotificationService.notify_role(
                self.STAFF_ROLES,
                EventLog.PLATFORM_STATUS_CHANGE,
                "BetMGM resubmitted for review",
                f"{client.name} BetMGM resubmitted (attempt {attempt}, agent reported: {agent_result})",
                link=f"/backoffice/client-management?client={client.id}",
                client=client,
            )
        except Exception as e:
            logger.warning(f"Notification failed after BetMGM retry for client {client.id}: {e}")

        return self.create_result(success=True, data={'status': platform.status, 'retry_count': attempt})
