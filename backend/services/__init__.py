"""
Service layer for the maestro back office.

Business rules live here; views translate HTTP into service calls and
ServiceResult objects back into responses.
"""

from .base_service import BaseService, ServiceResult, ServiceAuthorizationMixin

__all__ = ['BaseService', 'ServiceResult', 'ServiceAuthorizationMixin']
