"""
Platform Service

Agent screenshot uploads against a client's platform accounts.
"""

from django.core.exceptions import ValidationError
from django.db import transaction

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from backoffice.storage import delete_upload, store_upload
from clients.models import Client, ClientPlatform, EventLog
from clients.platforms import PLATFORM_INFO
import logging

logger = logging.getLogger(__name__)


class PlatformService(BaseService):

    def get_service_name(self) -> str:
        return "platform_service"

    def _get_own_client(self, client_id: int):
        if not self.user:
            return None
        return Client.objects.filter(pk=client_id, agent=self.user).first()

    def upload_platform_screenshot(self, client_id: int, platform_type: str, uploaded_file) -> ServiceResult:
        if uploaded_file is None:
            return self.create_error_result("No file provided")
        if platform_type not in PLATFORM_INFO:
            return self.create_error_result("Platform not found")

        client = self._get_own_client(client_id)
        if client is None:
            return self.create_error_result("Client not found")

        try:
            with transaction.atomic():
                platform, _ = ClientPlatform.objects.select_for_update().get_or_create(
                    client=client, platform_type=platform_type
                )
                path = store_upload(uploaded_file, f"uploads/clients/{client.id}/platforms/{platform_type}")
                platform.screenshots = list(platform.screenshots or []) + [path]
                platform.status = ClientPlatform.STATUS_PENDING_REVIEW
                platform.save(update_fields=['screenshots', 'status', 'updated_at'])

                log_event(
                    EventLog.PLATFORM_UPLOAD,
                    f"Screenshot uploaded for {platform_type}",
                    client=client,
                    user=self.user,
                    metadata={'platform_type': platform_type, 'path': path},
                )
        except ValidationError as e:
            return self.create_error_result('; '.join(e.messages))
        except Exception as e:
            return self.handle_exception(e, context="upload_platform_screenshot", user_error="Failed to upload screenshot")

        self.log_service_action("upload_platform_screenshot", {'client_id': client.id, 'platform_type': platform_type})
        return self.create_result(success=True, data={'path': path, 'status': platform.status})

    def delete_platform_screenshot(self, client_id: int, platform_type: str, path: str) -> ServiceResult:
        client = self._get_own_client(client_id)
        if client is None:
            return self.create_error_result("Client not found")

        platform = ClientPlatform.objects.filter(client=client, platform_type=platform_type).first()
        if platform is None:
            return self.create_error_result("Platform not found")

        screenshots = platform.screenshots or []
        if path not in screenshots:
            return self.create_error_result("Screenshot not found")
        remaining = [s for s in screenshots if s != path]

        try:
            with transaction.atomic():
                platform.screenshots = remaining
                platform.status = (
                    ClientPlatform.STATUS_PENDING_REVIEW if remaining else ClientPlatform.STATUS_PENDING_UPLOAD
                )
                platform.save(update_fields=['screenshots', 'status', 'updated_at'])

                log_event(
                    EventLog.PLATFORM_UPLOAD,
                    f"Screenshot deleted for {platform_type}",
                    client=client,
                    user=self.user,
                    metadata={'platform_type': platform_type, 'path': path, 'action': 'delete'},
                )
            delete_upload(path)
        except Exception as e:
            return self.handle_exception(e, context="delete_platform_screenshot", user_error="Failed to delete screenshot")

        self.log_service_action("delete_platform_screenshot", {'client_id': client.id, 'platform_type': platform_type})
        return self.create_result(success=True, data={'status': platform.status, 'screenshots': remaining})
