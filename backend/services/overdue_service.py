"""
Overdue Service

Sweeps IN_EXECUTION clients whose deadline has passed into EXECUTION_DELAYED.
Runs from the celery beat schedule, the ``mark_overdue_clients`` command and
a staff endpoint.
"""

from django.contrib.auth import get_user_model
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from .status_transition_service import StatusTransitionService
from clients.models import Client, EventLog
import logging

logger = logging.getLogger(__name__)

OVERDUE_REASON = "Execution deadline has passed"


def get_system_user():
    """The oldest active admin acts for scheduled jobs."""
    User = get_user_model()
    return User.objects.filter(role=User.ROLE_ADMIN, is_active=True).order_by('date_joined', 'id').first()


class OverdueService(BaseService):

    def get_service_name(self) -> str:
        return "overdue_service"

    def check_overdue_clients(self) -> ServiceResult:
        overdue = list(
            Client.objects.filter(
                intake_status=Client.STATUS_IN_EXECUTION,
                execution_deadline__lt=timezone.now(),
            ).values_list('id', flat=True)
        )
        if not overdue:
            return self.create_result(success=True, data={'marked': 0, 'client_ids': []})

        actor = self.user or get_system_user()
        if actor is None:
            return self.create_error_result("No active admin user found for system operations")

        transitions = StatusTransitionService(actor)
        marked = []
        for client_id in overdue:
            result = transitions.transition_status(
                client_id, Client.STATUS_EXECUTION_DELAYED, reason=OVERDUE_REASON
            )
            if not result.success:
                logger.warning(f"Could not mark client {client_id} overdue: {result.error}")
                continue

            log_event(
                EventLog.DEADLINE_MISSED,
                "Execution deadline missed",
                client=Client.objects.get(pk=client_id),
                user=actor,
                metadata={'execution_deadline': result.data['execution_deadline'].isoformat()
                          if result.data['execution_deadline'] else None},
            )
            marked.append(client_id)

        logger.info(f"Overdue sweep marked {len(marked)} of {len(overdue)} client(s)")
        return self.create_result(success=True, data={'marked': len(marked), 'client_ids': marked})
