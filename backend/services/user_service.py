"""
User Service

Staff-managed user accounts. BACKOFFICE users may only manage agents;
ADMIN users manage everyone.
"""

from typing import Any, Dict, Tuple
from django.contrib.auth import get_user_model
from django.db import transaction

from .base_service import BaseService, ServiceResult
from .event_service import log_event
from clients.models import EventLog
import logging

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def split_name(name: str) -> Tuple[str, str]:
    first, _, last = name.strip().partition(' ')
    return first, last.strip()


class UserService(BaseService):

    def get_service_name(self) -> str:
        return "user_service"

    @property
    def model(self):
        return get_user_model()

    def _valid_roles(self):
        return {choice[0] for choice in self.model.ROLE_CHOICES}

    def _is_backoffice(self) -> bool:
        return self.user.role == self.model.ROLE_BACKOFFICE

    def create_user(self, data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied

        User = self.model
        name = (data.get('name') or '').strip()
        email = (data.get('email') or '').strip().lower()
        password = data.get('password') or ''
        role = data.get('role')

        if not name:
            return self.create_error_result("Name is required")
        if not email:
            return self.create_error_result("Email is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            return self.create_error_result("Password must be at least 8 characters")
        if role not in self._valid_roles():
            return self.create_error_result("Invalid role")
        if self._is_backoffice() and role != User.ROLE_AGENT:
            return self.create_error_result("Backoffice users can only create Agent accounts")
        if User.objects.filter(email__iexact=email).exists():
            return self.create_error_result("Email is already in use")

        first_name, last_name = split_name(name)
        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    first_name=first_name,
                    last_name=last_name,
                    phone=data.get('phone') or None,
                    role=role,
                    supervisor_id=data.get('supervisor_id'),
                )
                log_event(
                    EventLog.USER_CREATED,
                    f"Created user account: {user.email} ({role})",
                    user=self.user,
                    new_value=user.email,
                    metadata={'user_id': user.id, 'role': role},
                )
        except Exception as e:
            return self.handle_exception(e, context="create_user", user_error="Failed to create user")

        self.log_service_action("create_user", {'user_id': user.id, 'role': role})
        return self.create_result(success=True, data=user)

    def update_user(self, user_id: int, data: Dict[str, Any]) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied

        User = self.model
        target = User.objects.filter(pk=user_id).first()
        if target is None:
            return self.create_error_result("User not found")
        if self._is_backoffice() and target.role != User.ROLE_AGENT and target.pk != self.user.pk:
            return self.create_error_result("Backoffice users can only edit Agent accounts")

        if 'name' in data and not (data.get('name') or '').strip():
            return self.create_error_result("Name is required")
        if 'email' in data and not (data.get('email') or '').strip():
            return self.create_error_result("Email is required")

        email = (data.get('email') or target.email).strip().lower()
        if email != target.email and User.objects.filter(email__iexact=email).exclude(pk=target.pk).exists():
            return self.create_error_result("Email is already in use")

        role = data.get('role')
        if role and role != target.role:
            if role not in self._valid_roles():
                return self.create_error_result("Invalid role")
            if target.pk == self.user.pk:
                return self.create_error_result("Cannot change your own role")
            if self._is_backoffice() and role != User.ROLE_AGENT:
                return self.create_error_result("Backoffice users can only assign Agent role")

        with transaction.atomic():
            if data.get('name'):
                target.first_name, target.last_name = split_name(data['name'])
            target.email = email
            if 'phone' in data:
                target.phone = data.get('phone') or None
            if 'supervisor_id' in data:
                target.supervisor_id = data.get('supervisor_id')
            if role:
                target.role = role
            target.save()

            log_event(
                EventLog.USER_UPDATED,
                f"Updated user account: {target.email}",
                user=self.user,
                metadata={'user_id': target.id},
            )

        self.log_service_action("update_user", {'user_id': target.id})
        return self.create_result(success=True, data=target)

    def toggle_user_active(self, user_id: int) -> ServiceResult:
        denied = self.require_roles(['ADMIN'], error="Only admins can toggle user status")
        if denied:
            return denied
        if int(user_id) == self.user.pk:
            return self.create_error_result("Cannot deactivate yourself")

        target = self.model.objects.filter(pk=user_id).first()
        if target is None:
            return self.create_error_result("User not found")

        target.is_active = not target.is_active
        target.save(update_fields=['is_active'])

        log_event(
            EventLog.USER_DEACTIVATED if not target.is_active else EventLog.USER_UPDATED,
            f"{'Activated' if target.is_active else 'Deactivated'} user: {target.email}",
            user=self.user,
            metadata={'user_id': target.id, 'is_active': target.is_active},
        )

        self.log_service_action("toggle_user_active", {'user_id': target.id, 'is_active': target.is_active})
        return self.create_result(success=True, data={'user_id': target.id, 'is_active': target.is_active})

    def reset_user_password(self, user_id: int, new_password: str) -> ServiceResult:
        denied = self.require_staff_access()
        if denied:
            return denied
        if len(new_password or '') < MIN_PASSWORD_LENGTH:
            return self.create_error_result("Password must be at least 8 characters")

        target = self.model.objects.filter(pk=user_id).first()
        if target is None:
            return self.create_error_result("User not found")
        if self._is_backoffice() and target.role != self.model.ROLE_AGENT:
            return self.create_error_result("Backoffice users can only reset Agent passwords")

        target.set_password(new_password)
        target.save(update_fields=['password'])

        self.log_service_action("reset_user_password", {'user_id': target.id})
        return self.create_result(success=True, data={'user_id': target.id})
