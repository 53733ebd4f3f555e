"""
Client workflow Celery tasks
"""

from celery import shared_task
import logging

from services.overdue_service import OverdueService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def mark_overdue_clients_task(self):
    """
    Hourly sweep: IN_EXECUTION clients past their deadline become EXECUTION_DELAYED.
    """
    try:
        result = OverdueService().check_overdue_clients()
    except Exception as e:
        logger.error(f"Overdue sweep failed: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))

    if not result.success:
        logger.error(f"Overdue sweep aborted: {result.error}")
        return {'status': 'error', 'error': result.error}

    return {'status': 'success', **result.data}
