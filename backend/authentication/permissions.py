from rest_framework.permissions import BasePermission

from .models import User


def _has_role(request, *roles):
    user = request.user
    return bool(user and user.is_authenticated and user.is_active and user.role in roles)


class IsStaffRole(BasePermission):
    """
    Only ADMIN and BACKOFFICE users may proceed.
    """
    message = "Unauthorized"

    def has_permission(self, request, view):
        return _has_role(request, *User.STAFF_ROLES)


class IsAdminRole(BasePermission):
    """
    Only ADMIN users may proceed.
    """
    message = "Only admins can perform this action"

    def has_permission(self, request, view):
        return _has_role(request, User.ROLE_ADMIN)


class IsAgentRole(BasePermission):
    """
    Only field agents may proceed.
    """
    message = "Only agents can perform this action"

    def has_permission(self, request, view):
        return _has_role(request, User.ROLE_AGENT)


class IsAgentOrStaff(BasePermission):
    """
    Agents and staff; FINANCE users are read-only elsewhere and excluded here.
    """
    def has_permission(self, request, view):
        return _has_role(request, User.ROLE_AGENT, *User.STAFF_ROLES)


class IsFinanceOrStaff(BasePermission):
    """
    Reporting access: staff plus FINANCE.
    """
    def has_permission(self, request, view):
        return _has_role(request, User.ROLE_FINANCE, *User.STAFF_ROLES)
