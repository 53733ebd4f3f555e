"""
Status Transition Service

Moves a client through the intake pipeline: validates the transition, keeps
the execution deadline, and generates or cancels the agent's to-dos.
"""

from datetime import timedelta
from typing import Dict, List, Optional
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import Client, EventLog
from clients.platforms import ALL_PLATFORMS, get_platform_name
from clients.utils import add_business_days
from notifications.services import NotificationService
from todos.models import ToDo
import logging

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[str, List[str]] = {
    Client.STATUS_PENDING: [
        Client.STATUS_PREQUAL_REVIEW,
        Client.STATUS_PHONE_ISSUED,
        Client.STATUS_REJECTED,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_PREQUAL_REVIEW: [
        Client.STATUS_PREQUAL_APPROVED,
        Client.STATUS_REJECTED,
        Client.STATUS_NEEDS_MORE_INFO,
        Client.STATUS_READY_FOR_APPROVAL,
    ],
    Client.STATUS_PREQUAL_APPROVED: [
        Client.STATUS_PHONE_ISSUED,
        Client.STATUS_READY_FOR_APPROVAL,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_PHONE_ISSUED: [
        Client.STATUS_IN_EXECUTION,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_IN_EXECUTION: [
        Client.STATUS_READY_FOR_APPROVAL,
        Client.STATUS_NEEDS_MORE_INFO,
        Client.STATUS_PENDING_EXTERNAL,
        Client.STATUS_EXECUTION_DELAYED,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_NEEDS_MORE_INFO: [
        Client.STATUS_IN_EXECUTION,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_PENDING_EXTERNAL: [
        Client.STATUS_IN_EXECUTION,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_EXECUTION_DELAYED: [
        Client.STATUS_IN_EXECUTION,
        Client.STATUS_INACTIVE,
    ],
    Client.STATUS_READY_FOR_APPROVAL: [
        Client.STATUS_APPROVED,
        Client.STATUS_REJECTED,
        Client.STATUS_NEEDS_MORE_INFO,
    ],
    Client.STATUS_APPROVED: [
        Client.STATUS_PARTNERSHIP_ENDED,
    ],
    Client.STATUS_REJECTED: [],
    Client.STATUS_INACTIVE: [],
    Client.STATUS_PARTNERSHIP_ENDED: [],
}

# Entering one of these cancels every open to-do of the client
CANCELLING_STATUSES = (Client.STATUS_REJECTED, Client.STATUS_INACTIVE)

# Leaving one of these cancels the open PROVIDE_INFO to-dos
WAITING_STATUSES = (Client.STATUS_NEEDS_MORE_INFO, Client.STATUS_PENDING_EXTERNAL)


def can_transition(old_status: str, new_status: str) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(old_status, [])


class StatusTransitionService(BaseService):
    """
    Single entry point for changing ``Client.intake_status``.
    """

    def get_service_name(self) -> str:
        return "status_transition_service"

    def transition_status(
        self,
        client_id: int,
        new_status: str,
        reason: Optional[str] = None,
        deadline_days: Optional[int] = None,
        metadata: Optional[Dict] = None,
    ) -> ServiceResult:
        """
        Transition a client to ``new_status``.

        The status change, event log and to-do bookkeeping commit together;
        bonus pool creation and agent notifications run after commit and
        never fail the transition.
        """
        if deadline_days is None:
            deadline_days = settings.MAESTRO['EXECUTION_DEADLINE_DAYS']

        try:
            with transaction.atomic():
                try:
                    client = Client.objects.select_for_update().select_related('agent').get(pk=client_id)
                except Client.DoesNotExist:
                    return self.create_error_result("Client not found")

                old_status = client.intake_status
                if not can_transition(old_status, new_status):
                    return self.create_error_result(
                        f"Cannot transition from {old_status} to {new_status}"
                    )

                now = timezone.now()
                client.intake_status = new_status
                client.status_changed_at = now
                update_fields = ['intake_status', 'status_changed_at', 'updated_at']

                if new_status == Client.STATUS_IN_EXECUTION:
                    client.execution_deadline = add_business_days(now, deadline_days)
                    update_fields.append('execution_deadline')

                client.save(update_fields=update_fields)

                description = f"Status changed from {old_status} to {new_status}"
                if reason:
                    description += f": {reason}"

                event_metadata = dict(metadata or {})
                if reason:
                    event_metadata['reason'] = reason
                if new_status == Client.STATUS_IN_EXECUTION:
                    event_metadata['execution_deadline'] = client.execution_deadline.isoformat()
                    event_metadata['deadline_days'] = deadline_days

                log_event(
                    EventLog.STATUS_CHANGE,
                    description,
                    client=client,
                    user=self.user,
                    old_value=old_status,
                    new_value=new_status,
                    metadata=event_metadata,
                )

                cancelled = self._cancel_todos(client, old_status, new_status)
                created = self._create_todos(client, new_status, now)

        except Exception as e:
            return self.handle_exception(e, context="transition_status", user_error="Failed to transition status")

        self.log_service_action(
            "transition_status",
            {'client_id': client.id, 'old_status': old_status, 'new_status': new_status},
        )

        self._after_commit(client, new_status, reason)

        return self.create_result(
            success=True,
            data={
                'client_id': client.id,
                'old_status': old_status,
                'new_status': new_status,
                'execution_deadline': client.execution_deadline,
                'todos_created': len(created),
                'todos_cancelled': cancelled,
            }
        )

    # ------------------------------------------------------------------
    # To-do bookkeeping
    # ------------------------------------------------------------------

    def _cancel_todos(self, client: Client, old_status: str, new_status: str) -> int:
        cancelled = 0
        open_todos = ToDo.objects.filter(client=client, status__in=ToDo.OPEN_STATUSES)

        if new_status in CANCELLING_STATUSES:
            cancelled += open_todos.update(status=ToDo.STATUS_CANCELLED)
        elif old_status in WAITING_STATUSES and new_status != old_status:
            cancelled += open_todos.filter(type=ToDo.TYPE_PROVIDE_INFO).update(status=ToDo.STATUS_CANCELLED)

        return cancelled

    def _create_todos(self, client: Client, new_status: str, now) -> List[ToDo]:
        if client.agent_id is None:
            return []

        specs = []
        if new_status == Client.STATUS_PHONE_ISSUED:
            specs = [
                dict(type=ToDo.TYPE_VERIFICATION, title="Verify client identity documents",
                     priority=2, due_date=now + timedelta(days=1)),
                dict(type=ToDo.TYPE_VERIFICATION, title="Set up bank account",
                     priority=1, due_date=now + timedelta(days=2)),
            ]
        elif new_status == Client.STATUS_IN_EXECUTION:
            specs = self._execution_todo_specs(client)
        elif new_status == Client.STATUS_NEEDS_MORE_INFO:
            specs = [
                dict(type=ToDo.TYPE_PROVIDE_INFO, title="Provide additional information requested",
                     priority=2, due_date=now + timedelta(days=2)),
            ]
        elif new_status == Client.STATUS_APPROVED:
            specs = [
                dict(type=ToDo.TYPE_PHONE_SIGNOUT, title="Sign out of all platform accounts on phone",
                     priority=2, due_date=now + timedelta(days=1)),
                dict(type=ToDo.TYPE_PHONE_RETURN, title="Return company phone",
                     priority=1, due_date=now + timedelta(days=2)),
            ]

        created = []
        for spec in specs:
            todo = ToDo.objects.create(
                client=client,
                assigned_to=client.agent,
                created_by=self.user,
                **spec
            )
            log_event(
                EventLog.TODO_CREATED,
                f"To-do created: {todo.title}",
                client=client,
                user=self.user,
                metadata={'todo_id': todo.id, 'todo_type': todo.type},
            )
            created.append(todo)
        return created

    def _execution_todo_specs(self, client: Client) -> List[Dict]:
        """Screenshot to-dos per platform; re-entry only fills the gaps."""
        deadline = client.execution_deadline
        active = ToDo.objects.filter(client=client).exclude(status=ToDo.STATUS_CANCELLED)
        covered = set(
            active.filter(type=ToDo.TYPE_UPLOAD_SCREENSHOT).values_list('platform_type', flat=True)
        )

        specs = []
        for index, platform_type in enumerate(ALL_PLATFORMS):
            if platform_type in covered:
                continue
            specs.append(dict(
                type=ToDo.TYPE_UPLOAD_SCREENSHOT,
                title=f"Upload screenshot for {get_platform_name(platform_type)}",
                platform_type=platform_type,
                step_number=index + 1,
                priority=1,
                due_date=deadline,
            ))

        if not active.filter(type=ToDo.TYPE_EXECUTION).exists():
            specs.append(dict(
                type=ToDo.TYPE_EXECUTION,
                title="Complete all platform registrations",
                priority=2,
                due_date=deadline,
            ))
        return specs

    # ------------------------------------------------------------------
    # Post-commit side effects
    # ------------------------------------------------------------------

    def _after_commit(self, client: Client, new_status: str, reason: Optional[str]):
        if new_status == Client.STATUS_APPROVED:
            from .commission_service import CommissionService

            try:
                pool_result = CommissionService(self.user).create_bonus_pool(client.id)
                if not pool_result.success:
                    logger.error(f"Bonus pool creation failed for client {client.id}: {pool_result.error}")
            except Exception as e:
                logger.error(f"Bonus pool creation raised for client {client.id}: {e}", exc_info=True)

            self._notify_agent(
                client,
                EventLog.APPROVAL,
                "Client approved",
                f"{client.name} has been approved.",
            )
        elif new_status == Client.STATUS_REJECTED:
            message = f"{client.name} has been rejected."
            if reason:
                message += f" Reason: {reason}"
            self._notify_agent(client, EventLog.REJECTION, "Client rejected", message)

    def _notify_agent(self, client: Client, notification_type: str, title: str, message: str):
        if client.agent_id is None:
            return
        try:
            NotificationService.create_notification(
                recipient=client.agent,
                notification_type=notification_type,
                title=title,
                message=message,
                link=f"/agent/clients/{client.id}",
                client=client,
            )
        except Exception as e:
            logger.warning(f"Failed to notify agent of client {client.id}: {e}")
