"""
Partner Service

Partner records and client-to-partner assignment.
"""

from typing import Any, Dict, Iterable, Optional
from django.db import transaction

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import Client, EventLog
from partners.models import Partner
import logging

logger = logging.getLogger(__name__)

PARTNER_FIELDS = ('name', 'type', 'contact_name', 'email', 'phone', 'notes', 'status')


class PartnerService(BaseService):

    def get_service_name(self) -> str:
        return "partner_service"

    def create_partner(self, data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied

        name = (data.get('name') or '').strip()
        if not name:
            return self.create_error_result("Partner name is required")

        partner = Partner.objects.create(
            name=name,
            type=data.get('type') or 'referral',
            contact_name=data.get('contact_name') or None,
            email=data.get('email') or None,
            phone=data.get('phone') or None,
            notes=data.get('notes') or None,
        )
        self.log_service_action("create_partner", {'partner_id': partner.id})
        return self.create_result(success=True, data=partner)

    def update_partner(self, partner_id: Optional[int], data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not partner_id:
            return self.create_error_result("Partner ID is required")

        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            return self.create_error_result("Partner not found")

        if 'name' in data and not (data.get('name') or '').strip():
            return self.create_error_result("Partner name is required")

        for field in PARTNER_FIELDS:
            if field in data:
                value = data[field]
                setattr(partner, field, value.strip() if isinstance(value, str) else value)
        partner.save()

        self.log_service_action("update_partner", {'partner_id': partner.id})
        return self.create_result(success=True, data=partner)

    def delete_partner(self, partner_id: Optional[int]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not partner_id:
            return self.create_error_result("Partner ID is required")

        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            return self.create_error_result("Partner not found")

        assigned = partner.clients.count()
        if assigned > 0:
            return self.create_error_result(
                f"Cannot delete partner with {assigned} assigned client(s). Reassign them first."
            )

        partner.delete()
        self.log_service_action("delete_partner", {'partner_id': partner_id})
        return self.create_result(success=True, data={'partner_id': partner_id})

    def assign_client_to_partner(self, client_id: Optional[int], partner_id: Optional[int]) -> ServiceResult:
        """Assign a client to a partner; ``partner_id=None`` unassigns."""
        denied = self.require_staff_access()
        if denied:
            return denied
        if not client_id:
            return self.create_error_result("Client ID is required")

        client = Client.objects.filter(pk=client_id).first()
        if client is None:
            return self.create_error_result("Client not found")
        if partner_id and not Partner.objects.filter(pk=partner_id).exists():
            return self.create_error_result("Partner not found")

        old_partner_id = client.partner_id
        with transaction.atomic():
            client.partner_id = partner_id
            client.save(update_fields=['partner', 'updated_at'])
            log_event(
                EventLog.STATUS_CHANGE,
                "Client assigned to partner" if partner_id else "Client unassigned from partner",
                client=client,
                user=self.user,
                old_value=str(old_partner_id) if old_partner_id else None,
                new_value=str(partner_id) if partner_id else None,
            )

        self.log_service_action("assign_client_to_partner", {'client_id': client.id, 'partner_id': partner_id})
        return self.create_result(success=True, data={'client_id': client.id, 'partner_id': partner_id})

    def bulk_assign_partner(self, client_ids: Iterable[int], partner_id: Optional[int]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if not client_ids:
            return self.create_error_result("No clients selected")
        if not partner_id:
            return self.create_error_result("Partner ID is required")
        if not Partner.objects.filter(pk=partner_id).exists():
            return self.create_error_result("Partner not found")

        updated = Client.objects.filter(id__in=client_ids).update(partner_id=partner_id)
        self.log_service_action("bulk_assign_partner", {'partner_id': partner_id, 'updated': updated})
        return self.create_result(success=True, data={'updated': updated})
