"""
Phone Service

Company phones handed to agents for a client's execution phase:
issue -> sign out -> return.
"""

from typing import Optional
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .status_transition_service import StatusTransitionService
from clients.models import Client, PhoneAssignment
import logging

logger = logging.getLogger(__name__)


class PhoneService(BaseService):

    def get_service_name(self) -> str:
        return "phone_service"

    def assign_phone(self, client_id: int, phone_number: str, device_id: Optional[str] = None,
                     notes: Optional[str] = None) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        client = Client.objects.select_related('agent').filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")
        if client.intake_status not in (Client.STATUS_PENDING, Client.STATUS_PREQUAL_APPROVED):
            return self.create_error_result("Client must be in PENDING status to assign a phone")
        if PhoneAssignment.objects.filter(client=client).exists():
            return self.create_error_result("Client already has a phone assignment")
        if client.agent_id is None:
            return self.create_error_result("Client has no assigned agent")

        try:
            with transaction.atomic():
                assignment = PhoneAssignment.objects.create(
                    client=client,
                    agent=client.agent,
                    phone_number=phone_number,
                    device_id=device_id or None,
                    notes=notes or None,
                    issued_at=timezone.now(),
                )
                result = StatusTransitionService(self.user).transition_status(client.id, Client.STATUS_PHONE_ISSUED)
                if not result.success:
                    transaction.set_rollback(True)
                    return result
        except Exception as e:
            return self.handle_exception(e, context="assign_phone", user_error="Failed to assign phone")

        self.log_service_action("assign_phone", {'client_id': client.id, 'assignment_id': assignment.id})
        return self.create_result(success=True, data={'assignment_id': assignment.id, **result.data})

    def sign_out_phone(self, assignment_id: int) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        assignment = PhoneAssignment.objects.filter(pk=assignment_id).first()
        if assignment is None:
            return self.create_error_result("Assignment not found")
        if assignment.issued_at is None:
            return self.create_error_result("Phone has not been issued yet")
        if assignment.signed_out_at is not None:
            return self.create_error_result("Phone is already signed out")

        try:
            assignment.signed_out_at = timezone.now()
            assignment.save(update_fields=['signed_out_at'])
        except Exception as e:
            return self.handle_exception(e, context="sign_out_phone", user_error="Failed to sign out phone")

        self.log_service_action("sign_out_phone", {'assignment_id': assignment.id})
        return self.create_result(success=True, data={'assignment_id': assignment.id})

    def return_phone(self, assignment_id: int) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied

        assignment = PhoneAssignment.objects.filter(pk=assignment_id).first()
        if assignment is None:
            return self.create_error_result("Assignment not found")
        if assignment.signed_out_at is None:
            return self.create_error_result("Phone must be signed out before returning")
        if assignment.returned_at is not None:
            return self.create_error_result("Phone has already been returned")

        try:
            assignment.returned_at = timezone.now()
            assignment.save(update_fields=['returned_at'])
        except Exception as e:
            return self.handle_exception(e, context="return_phone", user_error="Failed to return phone")

        self.log_service_action("return_phone", {'assignment_id': assignment.id})
        return self.create_result(success=True, data={'assignment_id': assignment.id})
