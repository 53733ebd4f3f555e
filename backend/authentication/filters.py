import django_filters
from .models import User
from django.db.models import Q


class UserFilter(django_filters.FilterSet):
    """
    Filter for the User model.
    """
    full_name = django_filters.CharFilter(method='filter_by_full_name', label="Full Name")
    role = django_filters.CharFilter(method='filter_by_role', label="Role")

    class Meta:
        model = User
        fields = ['email', 'role', 'is_active', 'supervisor', 'tier']

    def filter_by_full_name(self, queryset, name, value):
        """
        Custom filter to search by full name (first name + last name).
        """
        return queryset.filter(
            Q(first_name__icontains=value) | Q(last_name__icontains=value)
        )

    def filter_by_role(self, queryset, name, value):
        """
        Accepts role codes case-insensitively, e.g. ``agent`` or ``BACKOFFICE``.
        """
        if not value:
            return queryset
        return queryset.filter(role=value.strip().upper())
