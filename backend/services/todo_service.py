"""
To-do Service

Agent work items: screenshot uploads with content detection, completion and
due-date extensions.
"""

from datetime import timedelta
from typing import Dict, List, Optional
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from backoffice.storage import store_upload
from backoffice.validators import validate_image_upload
from clients.models import ClientPlatform, EventLog
from notifications.services import NotificationService
from todos.models import ToDo
import logging

logger = logging.getLogger(__name__)

MAX_FILES = 5
EXTENSION_DAYS = 3


def detect_screenshot_content(filename: str, platform_type: Optional[str] = None) -> Dict:
    """
    Guess what a screenshot shows from hints in its file name.

    Stands in for image recognition: returns a content type, a confidence
    and the fields a reviewer would extract from that kind of screen.
    """
    name = (filename or '').lower()
    platform = platform_type or 'Unknown'

    if 'login' in name or 'credential' in name:
        return {
            'content_type': 'Online Banking Login',
            'confidence': 0.94,
            'extracted': {'platform': platform, 'username': 'detected_username'},
        }
    if 'balance' in name or 'dashboard' in name:
        return {
            'content_type': 'Balance Screenshot',
            'confidence': 0.91,
            'extracted': {'platform': platform, 'balance': '$0.00'},
        }
    if 'address' in name or 'verification' in name:
        return {
            'content_type': 'Address Verification',
            'confidence': 0.88,
            'extracted': {'platform': platform, 'address': ''},
        }
    return {
        'content_type': 'Platform Registration',
        'confidence': 0.85,
        'extracted': {'platform': platform, 'username': 'detected_username'},
    }


class ToDoService(BaseService):

    def get_service_name(self) -> str:
        return "todo_service"

    def _get_own_todo(self, todo_id: int) -> Optional[ToDo]:
        if not self.user:
            return None
        return ToDo.objects.select_related('client').filter(pk=todo_id, client__agent=self.user).first()

    def upload_todo_screenshots(self, todo_id: int, files: List) -> ServiceResult:
        todo = self._get_own_todo(todo_id)
        if todo is None:
            return self.create_error_result("To-Do not found")

        if not files:
            return self.create_error_result("No files provided")
        if len(files) > MAX_FILES:
            return self.create_error_result(f"Maximum {MAX_FILES} files allowed")

        try:
            for uploaded in files:
                validate_image_upload(uploaded)
        except ValidationError as e:
            return self.create_error_result('; '.join(e.messages))

        detections = []
        try:
            for uploaded in files:
                url = store_upload(uploaded, f"uploads/todos/{todo.id}")
                detections.append({'path': url, **detect_screenshot_content(uploaded.name, todo.platform_type)})
        except ValidationError as e:
            return self.create_error_result('; '.join(e.messages))
        except Exception as e:
            return self.handle_exception(e, context="upload_todo_screenshots", user_error="Failed to upload screenshots")

        self.log_service_action("upload_todo_screenshots", {'todo_id': todo.id, 'files': len(files)})
        return self.create_result(success=True, data={'detections': detections})

    def confirm_todo_upload(self, todo_id: int, detections: List[Dict]) -> ServiceResult:
        todo = self._get_own_todo(todo_id)
        if todo is None:
            return self.create_error_result("To-Do not found")

        paths = [d['path'] for d in detections if d.get('path')]

        try:
            with transaction.atomic():
                todo.screenshots = paths
                todo.status = ToDo.STATUS_COMPLETED
                todo.completed_at = timezone.now()
                todo.metadata = {**(todo.metadata or {}), 'detections': detections}
                todo.save(update_fields=['screenshots', 'status', 'completed_at', 'metadata', 'updated_at'])

                if todo.platform_type:
                    platform = ClientPlatform.objects.filter(
                        client=todo.client, platform_type=todo.platform_type
                    ).first()
                    if platform:
                        username = next(
                            (d['extracted']['username'] for d in detections
                             if d.get('extracted', {}).get('username')),
                            None,
                        )
                        platform.screenshots = list(platform.screenshots or []) + paths
                        platform.status = ClientPlatform.STATUS_PENDING_REVIEW
                        platform.username = username or platform.username
                        platform.save(update_fields=['screenshots', 'status', 'username', 'updated_at'])

                log_event(
                    EventLog.TODO_COMPLETED,
                    f"To-Do completed: {todo.title}",
                    client=todo.client,
                    user=self.user,
                    metadata={
                        'todo_id': todo.id,
                        'screenshot_count': len(paths),
                        'platform_type': todo.platform_type,
                    },
                )
        except Exception as e:
            return self.handle_exception(e, context="confirm_todo_upload", user_error="Failed to confirm upload")

        self.log_service_action("confirm_todo_upload", {'todo_id': todo.id})

        try:
            NotificationService.notify_role(
                self.STAFF_ROLES,
                EventLog.TODO_COMPLETED,
                "Task completed",
                f"Task completed: {todo.title}",
                link="/backoffice/todo-list",
                client=todo.client,
            )
        except Exception as e:
            logger.warning(f"Task completion notification failed for to-do {todo.id}: {e}")

        return self.create_result(success=True, data={'todo_id': todo.id, 'status': todo.status})

    def request_todo_extension(self, todo_id: int) -> ServiceResult:
        todo = self._get_own_todo(todo_id)
        if todo is None:
            return self.create_error_result("To-Do not found")

        if todo.extensions_used >= todo.max_extensions:
            return self.create_error_result("No extensions remaining")

        base = todo.due_date or timezone.now()
        todo.due_date = base + timedelta(days=EXTENSION_DAYS)
        todo.extensions_used += 1
        todo.save(update_fields=['due_date', 'extensions_used', 'updated_at'])

        self.log_service_action("request_todo_extension", {'todo_id': todo.id, 'extensions_used': todo.extensions_used})
        return self.create_result(
            success=True,
            data={'todo_id': todo.id, 'due_date': todo.due_date, 'extensions_used': todo.extensions_used}
        )
