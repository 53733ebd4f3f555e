"""
Base service class for the maestro back office

Provides the common result object and helpers shared by every workflow service.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from dataclasses import dataclass
from abc import ABC, abstractmethod
from django.db import transaction
from django.core.exceptions import ValidationError
logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """
    Standard result object for service operations
    """
    success: bool = True
    data: Any = None
    errors: List[str] = None
    warnings: List[str] = None
    meta: Dict[str, Any] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.warnings is None:
            self.warnings = []
        if self.meta is None:
            self.meta = {}

    def add_error(self, error: str):
        """Add an error and mark result as failed"""
        self.errors.append(error)
        self.success = False

    def add_warning(self, warning: str):
        """Add a warning without failing the operation"""
        self.warnings.append(warning)

    def add_meta(self, key: str, value: Any):
        """Add metadata to the result"""
        self.meta[key] = value

    @property
    def error(self) -> Optional[str]:
        """The first error message, if any"""
        return self.errors[0] if self.errors else None

    @property
    def has_errors(self) -> bool:
        """Check if the result has any errors"""
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        """Check if the result has any warnings"""
        return len(self.warnings) > 0


class ServiceAuthorizationMixin:
    """Role checks shared by services acting on behalf of a user."""

    STAFF_ROLES = ('ADMIN', 'BACKOFFICE')

    def user_has_role(self, *roles: str) -> bool:
        return bool(self.user and self.user.is_active and self.user.role in roles)

    def is_staff_user(self) -> bool:
        return self.user_has_role(*self.STAFF_ROLES)


class BaseService(ServiceAuthorizationMixin, ABC):
    """
    Abstract base class for all business logic services

    Provides:
    - Common error handling patterns
    - Transaction management
    - Logging integration
    - User context
    """

    def __init__(self, user=None):
        """
        Initialize service with user context

        Args:
            user: The user making the request (None for system jobs)
        """
        self.user = user
        self.logger = logging.getLogger(self.__class__.__module__)

    def create_result(self, success: bool = True, data: Any = None) -> ServiceResult:
        """Create a new ServiceResult object"""
        return ServiceResult(success=success, data=data)

    def create_error_result(self, error: str, data: Any = None) -> ServiceResult:
        """Create a failed ServiceResult with error message"""
        result = ServiceResult(success=False, data=data)
        result.add_error(error)
        return result

    @transaction.atomic
    def execute_with_transaction(self, operation_func, *args, **kwargs) -> ServiceResult:
        """
        Execute a service operation within a database transaction

        A failed ServiceResult rolls the transaction back just like an exception.
        """
        try:
            result = operation_func(*args, **kwargs)
            if isinstance(result, ServiceResult) and not result.success:
                transaction.set_rollback(True)
            return result
        except Exception as e:
            transaction.set_rollback(True)
            return self.handle_exception(e, context=getattr(operation_func, '__name__', None))

    def require_roles(self, roles: Iterable[str], error: str = "Unauthorized") -> Optional[ServiceResult]:
        """
        Return an error result unless the acting user holds one of ``roles``.

        Returns None when the check passes so callers can write
        ``denied = self.require_roles(...); if denied: return denied``.
        """
        if not self.user:
            return self.create_error_result("Authentication required")
        if not self.user_has_role(*roles):
            return self.create_error_result(error)
        return None

    def require_staff_access(self) -> Optional[ServiceResult]:
        """Staff check for back-office management screens."""
        if not self.user:
            return self.create_error_result("Not authenticated")
        if not self.is_staff_user():
            return self.create_error_result("Insufficient permissions")
        return None

    def validate_input(self, data: Dict[str, Any], required_fields: List[str] = None) -> ServiceResult:
        """
        Validate input data for required fields
        """
        result = self.create_result()

        if required_fields:
            for field in required_fields:
                value = data.get(field)
                if value is None or (isinstance(value, str) and not value.strip()):
                    result.add_error(f"Required field missing: {field}")

        return result

    def log_service_action(self, action: str, data: Dict[str, Any] = None, level: str = 'INFO'):
        """
        Log a service action with context
        """
        log_data = {
            'service': self.get_service_name(),
            'actor': self.user.email if self.user else 'system',
            'action': action
        }

        if data:
            log_data.update(data)

        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.log(log_level, f"Service Action: {action}", extra={'context': log_data})

    def handle_exception(self, e: Exception, context: str = None, user_error: str = None) -> ServiceResult:
        """
        Handle exceptions with consistent logging and error response

        Args:
            e: The exception that occurred
            context: Where the exception occurred
            user_error: Message returned to the caller instead of the exception text
        """
        error_msg = f"Service error in {self.get_service_name()}"
        if context:
            error_msg += f" ({context})"
        error_msg += f": {str(e)}"

        self.logger.error(error_msg, exc_info=True)

        if user_error is None:
            user_error = "An error occurred while processing your request"
            if isinstance(e, ValidationError):
                user_error = '; '.join(e.messages)

        return self.create_error_result(user_error)

    @abstractmethod
    def get_service_name(self) -> str:
        """Return the name of this service for logging and identification"""
        pass

    def __str__(self) -> str:
        return f"{self.get_service_name()}<user={self.user}>"
