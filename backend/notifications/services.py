from django.contrib.auth import get_user_model
from django.utils import timezone
from .models import Notification
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for creating and managing notifications.
    """

    @staticmethod
    def create_notification(
        recipient,
        notification_type,
        title,
        message,
        link=None,
        client=None,
    ):
        """
        Create a notification for a single recipient.

        Args:
            recipient: User object receiving the notification
            notification_type: One of EventLog event types
            title: Short headline
            message: Body text
            link: Frontend path to open when the notification is clicked
            client: Related client, if any

        Returns:
            The created Notification
        """
        notification = Notification.objects.create(
            recipient=recipient,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
            client=client,
        )
        logger.debug(f"Notification {notification.id} ({notification_type}) created for {recipient.email}")
        return notification

    @staticmethod
    def notify_role(
        roles,
        notification_type,
        title,
        message,
        link=None,
        client=None,
    ):
        """
        Create notifications for every active user holding one of ``roles``.

        Returns:
            List of created Notification objects (empty when nobody matches)
        """
        User = get_user_model()
        recipients = list(User.objects.filter(role__in=roles, is_active=True))

        if not recipients:
            logger.warning(f"No active users found for roles {list(roles)}; notification '{title}' not sent")
            return []

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=user,
                notification_type=notification_type,
                title=title,
                message=message,
                link=link,
                client=client,
            )
            for user in recipients
        ])
        logger.info(f"Sent '{title}' to {len(notifications)} user(s) with roles {list(roles)}")
        return notifications

    @staticmethod
    def get_user_notifications(user, limit=20, unread_only=False):
        """
        Get the most recent notifications for a user.
        """
        notifications = Notification.objects.filter(recipient=user)

        if unread_only:
            notifications = notifications.filter(is_read=False)

        return list(notifications[:limit])

    @staticmethod
    def get_unread_count(user):
        """
        Get count of unread notifications for a user.
        """
        return Notification.objects.filter(
            recipient=user,
            is_read=False
        ).count()

    @staticmethod
    def mark_as_read(notification_id, user):
        """
        Mark one of the user's notifications as read.

        Returns False when the notification does not exist or belongs to someone else.
        """
        updated = Notification.objects.filter(
            id=notification_id,
            recipient=user,
        ).update(is_read=True, read_at=timezone.now())
        return updated > 0

    @staticmethod
    def mark_all_as_read(user):
        """
        Mark every unread notification of the user as read.

        Returns the number of notifications updated.
        """
        return Notification.objects.filter(
            recipient=user,
            is_read=False
        ).update(is_read=True, read_at=timezone.now())
