from django.http import Http404
from drf_yasg.utils import swagger_auto_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationSerializer
from .services import NotificationService


@swagger_auto_schema(tags=['Notifications'])
class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The signed-in user's notifications, newest first.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Notification.objects.none()
        return Notification.objects.filter(recipient=self.request.user)

    def list(self, request, *args, **kwargs):
        """List notifications with optional filtering."""
        queryset = self.get_queryset()

        # Filter by read status
        unread_only = request.query_params.get('unread_only', 'false').lower() == 'true'
        if unread_only:
            queryset = queryset.filter(is_read=False)

        # Filter by type
        notification_type = request.query_params.get('type')
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    @swagger_auto_schema(method='post', responses={200: "Count of notifications marked read"}, tags=['Notifications'])
    @action(detail=False, methods=['post'])
    def mark_all_as_read(self, request):
        """Mark every unread notification of the current user as read."""
        count = NotificationService.mark_all_as_read(request.user)
        return Response({'message': f'{count} notifications marked as read.', 'count': count})

    @swagger_auto_schema(method='post', responses={200: "Notification marked read", 404: "Not found"}, tags=['Notifications'])
    @action(detail=True, methods=['post'])
    def mark_as_read(self, request, pk=None):
        """Mark a single notification as read."""
        if not NotificationService.mark_as_read(pk, request.user):
            raise Http404
        return Response({'message': 'Notification marked as read.'})

    @swagger_auto_schema(method='get', responses={200: "Unread count"}, tags=['Notifications'])
    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        """Get the count of unread notifications for the current user."""
        count = NotificationService.get_unread_count(request.user)
        return Response({'unread_count': count})
