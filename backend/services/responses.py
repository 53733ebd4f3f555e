"""
Translate ServiceResult objects into DRF responses.
"""

from rest_framework import status
from rest_framework.response import Response

from .base_service import ServiceResult


def service_response(result: ServiceResult, success_status=status.HTTP_200_OK,
                     error_status=status.HTTP_400_BAD_REQUEST) -> Response:
    """Standard envelope: ``{"success", "data"}`` or ``{"success", "error", "errors"}``."""
    if result.success:
        payload = {'success': True, 'data': result.data}
        if result.warnings:
            payload['warnings'] = result.warnings
        if result.meta:
            payload['meta'] = result.meta
        return Response(payload, status=success_status)

    return Response(
        {'success': False, 'error': result.error, 'errors': result.errors},
        status=error_status,
    )
