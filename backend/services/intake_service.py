"""
Intake Service

Client creation, prequalification, Gmail credentials, application drafts
and the phase lookup used by the agent intake screens.
"""

from typing import Any, Dict, List, Optional
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import ApplicationDraft, Client, ClientPlatform, EventLog
from clients.platforms import ALL_PLATFORMS, BETMGM
import logging

logger = logging.getLogger(__name__)

BETMGM_FAILED = 'failed'


def _is_valid_email(value) -> bool:
    try:
        validate_email(value)
    except ValidationError:
        return False
    return True


class IntakeService(BaseService):
    """
    Agent-facing intake operations.
    """

    def get_service_name(self) -> str:
        return "intake_service"

    def visible_clients(self):
        """Agents see their own clients; staff and finance see everyone."""
        clients = Client.objects.select_related('agent', 'partner')
        if self.user is not None and self.user.role == 'AGENT':
            clients = clients.filter(agent=self.user)
        return clients

    def create_client(self, data: Dict[str, Any]) -> ServiceResult:
        validation = self.validate_input(data, ['first_name', 'last_name', 'phone'])
        if not validation.success:
            return validation

        try:
            with transaction.atomic():
                client = Client.objects.create(
                    first_name=data['first_name'].strip(),
                    last_name=data['last_name'].strip(),
                    phone=data['phone'].strip(),
                    email=data.get('email') or None,
                    agent=self.user,
                    partner_id=data.get('partner_id'),
                )
                self._create_platforms(client)
                log_event(
                    EventLog.APPLICATION_SUBMITTED,
                    f"Application submitted for {client.name}",
                    client=client,
                    user=self.user,
                )
        except Exception as e:
            return self.handle_exception(e, context="create_client", user_error="Failed to create client")

        self.log_service_action("create_client", {'client_id': client.id})
        return self.create_result(success=True, data=client)

    def submit_prequalification(self, data: Dict[str, Any]) -> ServiceResult:
        """
        Create a PENDING client from the prequalification form.

        BetMGM is the only platform checked at this stage: it starts REJECTED
        when the agent reports a failed check, otherwise PENDING_REVIEW.
        """
        if not self.user:
            return self.create_error_result("You must be logged in to submit pre-qualification")

        result = self.create_result()
        if not (data.get('first_name') or '').strip():
            result.add_error("First name is required")
        if not (data.get('last_name') or '').strip():
            result.add_error("Last name is required")
        if not _is_valid_email(data.get('gmail_account') or ''):
            result.add_error("A valid Gmail account is required")
        if not data.get('gmail_password'):
            result.add_error("Gmail password is required")
        if data.get('agent_confirms_id') is not True:
            result.add_error("You must confirm the client's ID")
        if not result.success:
            return result

        id_expiry = data.get('id_expiry')
        if id_expiry and id_expiry < timezone.localdate():
            return self.create_error_result("Cannot submit — ID is expired")

        betmgm_result = data.get('betmgm_result') or None
        screenshots = [s for s in (data.get('betmgm_login_screenshot'), data.get('betmgm_deposit_screenshot')) if s]
        date_of_birth = data.get('date_of_birth')

        try:
            with transaction.atomic():
                client = Client.objects.create(
                    first_name=data['first_name'].strip(),
                    last_name=data['last_name'].strip(),
                    gmail_account=data['gmail_account'],
                    gmail_password=data['gmail_password'],
                    prequal_completed=True,
                    intake_status=Client.STATUS_PENDING,
                    agent=self.user,
                    id_document=data.get('id_document') or None,
                    id_expiry=id_expiry,
                    date_of_birth=date_of_birth,
                    questionnaire={
                        'middle_name': data.get('middle_name'),
                        'date_of_birth': date_of_birth.isoformat() if date_of_birth else None,
                        'id_expiry': id_expiry.isoformat() if id_expiry else None,
                        'id_verified': True,
                        'betmgm_result': betmgm_result,
                    },
                )

                betmgm_status = (
                    ClientPlatform.STATUS_REJECTED if betmgm_result == BETMGM_FAILED
                    else ClientPlatform.STATUS_PENDING_REVIEW
                )
                self._create_platforms(
                    client,
                    overrides={BETMGM: {'status': betmgm_status, 'screenshots': screenshots,
                                        'agent_result': betmgm_result}},
                )

                log_event(
                    EventLog.APPLICATION_SUBMITTED,
                    f"Pre-qualification submitted for {client.name}",
                    client=client,
                    user=self.user,
                )

                draft_id = data.get('draft_id')
                if draft_id:
                    ApplicationDraft.objects.filter(pk=draft_id, agent=self.user).delete()
        except Exception as e:
            return self.handle_exception(e, context="submit_prequalification",
                                         user_error="Failed to submit pre-qualification")

        self.log_service_action("submit_prequalification", {'client_id': client.id, 'betmgm_result': betmgm_result})
        return self.create_result(success=True, data=client)

    def update_gmail_credentials(self, client_id: int, gmail_account: str, gmail_password: str) -> ServiceResult:
        if not self.user:
            return self.create_error_result("You must be logged in")
        if not _is_valid_email(gmail_account or ''):
            return self.create_error_result("A valid Gmail account is required")
        if not gmail_password:
            return self.create_error_result("Gmail password is required")

        updated = Client.objects.filter(pk=client_id, agent=self.user).update(
            gmail_account=gmail_account,
            gmail_password=gmail_password,
            updated_at=timezone.now(),
        )
        if not updated:
            return self.create_error_result("Failed to update Gmail credentials")

        self.log_service_action("update_gmail_credentials", {'client_id': client_id})
        result = self.create_result(success=True, data={'client_id': client_id})
        result.add_meta('message', "Gmail credentials updated")
        return result

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def save_draft(self, data: Dict[str, Any], step: int = 1, draft_id: Optional[int] = None) -> ServiceResult:
        if not self.user:
            return self.create_error_result("Unauthorized")

        if draft_id:
            draft = ApplicationDraft.objects.filter(pk=draft_id, agent=self.user).first()
            if draft is None:
                return self.create_error_result("Draft not found")
            draft.data = data
            draft.step = step
            draft.save(update_fields=['data', 'step', 'updated_at'])
        else:
            draft = ApplicationDraft.objects.create(agent=self.user, data=data, step=step)

        return self.create_result(success=True, data=draft)

    def delete_draft(self, draft_id: int) -> ServiceResult:
        deleted, _ = ApplicationDraft.objects.filter(pk=draft_id, agent=self.user).delete()
        if not deleted:
            return self.create_error_result("Draft not found")
        return self.create_result(success=True, data={'draft_id': draft_id})

    def get_client_phase(self, client: Client) -> Optional[int]:
        """
        Intake phase shown in the agent UI.

        1 prequalification, 2 BetMGM cleared and waiting for a phone,
        3 execution, 4 awaiting final approval.
        """
        status = client.intake_status
        if status == Client.STATUS_PENDING:
            betmgm_verified = client.platforms.filter(
                platform_type=BETMGM, status=ClientPlatform.STATUS_VERIFIED
            ).exists()
            return 2 if client.prequal_completed and betmgm_verified else 1
        if status == Client.STATUS_PREQUAL_APPROVED:
            return 2
        if status in (Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION):
            return 3
        if status == Client.STATUS_READY_FOR_APPROVAL:
            return 4
        return None

    def _create_platforms(self, client: Client, overrides: Optional[Dict[str, Dict]] = None) -> List[ClientPlatform]:
        overrides = overrides or {}
        return ClientPlatform.objects.bulk_create([
            ClientPlatform(client=client, platform_type=platform_type, **overrides.get(platform_type, {}))
            for platform_type in ALL_PLATFORMS
        ])
