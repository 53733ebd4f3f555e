"""
Extension Service

Agents ask for more time on a client's execution deadline; staff approve or
reject. An approved request moves the deadline by business days and drags
the client's open to-dos along by the same calendar distance.
"""

from datetime import timedelta
from typing import Optional
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import Client, EventLog, ExtensionRequest
from clients.utils import add_business_days
from notifications.services import NotificationService
from todos.models import ToDo
import logging

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10
STAFF_REQUIRED = "Unauthorized — admin or backoffice role required"


class ExtensionService(BaseService):

    def get_service_name(self) -> str:
        return "extension_service"

    def request_deadline_extension(self, client_id: int, reason: str,
                                   requested_days: Optional[int] = None) -> ServiceResult:
        if not self.user:
            return self.create_error_result("Unauthorized")

        reason = (reason or '').strip()
        if len(reason) < MIN_REASON_LENGTH:
            return self.create_error_result("Please provide a reason (at least 10 characters)")

        client = Client.objects.select_related('agent').filter(pk=client_id, agent=self.user).first()
        if client is None:
            return self.create_error_result("Client not found")

        if client.intake_status != Client.STATUS_IN_EXECUTION:
            return self.create_error_result("Extensions can only be requested for clients in execution")

        if client.execution_deadline is None:
            return self.create_error_result("Client has no execution deadline set")

        if client.deadline_extensions >= settings.MAESTRO['MAX_DEADLINE_EXTENSIONS']:
            return self.create_error_result("Maximum number of extensions reached")

        if client.extension_requests.filter(status=ExtensionRequest.STATUS_PENDING).exists():
            return self.create_error_result("An extension request is already pending for this client")

        days = settings.MAESTRO['DEFAULT_EXTENSION_DAYS'] if requested_days is None else requested_days

        try:
            with transaction.atomic():
                request = ExtensionRequest.objects.create(
                    client=client,
                    requested_by=self.user,
                    reason=reason,
                    requested_days=days,
                    current_deadline=client.execution_deadline,
                )
                log_event(
                    EventLog.DEADLINE_EXTENDED,
                    f"Extension requested: {reason} (awaiting approval)",
                    client=client,
                    user=self.user,
                    metadata={
                        'requested_days': days,
                        'current_deadline': client.execution_deadline.isoformat(),
                        'extensions_used': client.deadline_extensions,
                    },
                )
        except Exception as e:
            return self.handle_exception(e, context="request_deadline_extension",
                                         user_error="Failed to submit extension request")

        self.log_service_action("request_deadline_extension", {'client_id': client.id, 'request_id': request.id})

        try:
            NotificationService.notify_role(
                self.STAFF_ROLES,
                EventLog.DEADLINE_EXTENDED,
                "Extension request",
                f"Extension request from {self.user.name} for {client.name}",
                link="/backoffice/todo-list",
                client=client,
            )
        except Exception as e:
            logger.warning(f"Extension request notification failed for client {client.id}: {e}")

        return self.create_result(success=True, data={'request_id': request.id})

    def approve_extension_request(self, request_id: int, notes: Optional[str] = None) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES, error=STAFF_REQUIRED)
        if denied:
            return denied

        request = ExtensionRequest.objects.select_related('client').filter(pk=request_id).first()
        if request is None:
            return self.create_error_result("Extension request not found")
        if request.status != ExtensionRequest.STATUS_PENDING:
            return self.create_error_result("Extension request is not pending")

        new_deadline = add_business_days(request.current_deadline, request.requested_days)
        shift = new_deadline - request.current_deadline
        shift = timedelta(days=round(shift.total_seconds() / 86400))

        try:
            with transaction.atomic():
                request.status = ExtensionRequest.STATUS_APPROVED
                request.reviewed_by = self.user
                request.reviewed_at = timezone.now()
                request.new_deadline = new_deadline
                request.review_notes = (notes or '').strip() or None
                request.save()

                client = request.client
                client.execution_deadline = new_deadline
                client.deadline_extensions += 1
                client.save(update_fields=['execution_deadline', 'deadline_extensions', 'updated_at'])

                todos = ToDo.objects.filter(
                    client=client,
                    status__in=ToDo.OPEN_STATUSES,
                    due_date__lte=request.current_deadline,
                )
                moved = 0
                for todo in todos:
                    todo.due_date = todo.due_date + shift
                    todo.save(update_fields=['due_date', 'updated_at'])
                    moved += 1

                log_event(
                    EventLog.DEADLINE_EXTENDED,
                    f"Extension approved: deadline extended to {new_deadline.strftime('%b')} "
                    f"{new_deadline.day}, {new_deadline.year} (+{request.requested_days} business days)",
                    client=client,
                    user=self.user,
                    metadata={
                        'extension_request_id': request.id,
                        'previous_deadline': request.current_deadline.isoformat(),
                        'new_deadline': new_deadline.isoformat(),
                        'requested_days': request.requested_days,
                        'todos_updated': moved,
                    },
                )
        except Exception as e:
            return self.handle_exception(e, context="approve_extension_request",
                                         user_error="Failed to approve extension request")

        self.log_service_action("approve_extension_request", {'request_id': request.id, 'todos_updated': moved})

        self._notify_requester(
            request,
            "Extension approved",
            f"Your extension request has been approved (+{request.requested_days} business days)",
        )
        return self.create_result(
            success=True,
            data={'request_id': request.id, 'new_deadline': new_deadline, 'todos_updated': moved}
        )

    def reject_extension_request(self, request_id: int, notes: Optional[str]) -> ServiceResult:
        notes = (notes or '').strip()
        if not notes:
            return self.create_error_result("Rejection notes are required")

        denied = self.require_roles(self.STAFF_ROLES, error=STAFF_REQUIRED)
        if denied:
            return denied

        request = ExtensionRequest.objects.select_related('client').filter(pk=request_id).first()
        if request is None:
            return self.create_error_result("Extension request not found")
        if request.status != ExtensionRequest.STATUS_PENDING:
            return self.create_error_result("Extension request is not pending")

        try:
            with transaction.atomic():
                request.status = ExtensionRequest.STATUS_REJECTED
                request.reviewed_by = self.user
                request.reviewed_at = timezone.now()
                request.review_notes = notes
                request.save()

                log_event(
                    EventLog.DEADLINE_EXTENDED,
                    f"Extension rejected: {notes}",
                    client=request.client,
                    user=self.user,
                    metadata={'extension_request_id': request.id, 'reason': request.reason},
                )
        except Exception as e:
            return self.handle_exception(e, context="reject_extension_request",
                                         user_error="Failed to reject extension request")

        self.log_service_action("reject_extension_request", {'request_id': request.id})

        self._notify_requester(request, "Extension rejected", f"Your extension request was rejected: {notes}")
        return self.create_result(success=True, data={'request_id': request.id})

    def _notify_requester(self, request: ExtensionRequest, title: str, message: str):
        try:
            NotificationService.create_notification(
                recipient=request.requested_by,
                notification_type=EventLog.DEADLINE_EXTENDED,
                title=title,
                message=message,
                link=f"/agent/clients/{request.client_id}",
                client=request.client,
            )
        except Exception as e:
            logger.warning(f"Extension notification failed for request {request.id}: {e}")
