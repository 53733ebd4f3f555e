from django.test import TestCase

from authentication.models import User
from clients.models import Client, EventLog
from notifications.models import Notification
from notifications.services import NotificationService


class NotificationServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.backoffice = User.objects.create_user(
            email='bo@maestro.test', password='password123', role=User.ROLE_BACKOFFICE
        )
        self.retired = User.objects.create_user(
            email='retired@maestro.test', password='password123', role=User.ROLE_BACKOFFICE, is_active=False
        )
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)

    def test_notify_role_skips_inactive_users(self):
        client = Client.objects.create(first_name='Jo', last_name='Park')

        created = NotificationService.notify_role(
            (User.ROLE_ADMIN, User.ROLE_BACKOFFICE),
            EventLog.APPLICATION_SUBMITTED,
            "New application",
            "Jo Park is ready for review.",
            link=f"/backoffice/clients/{client.id}",
            client=client,
        )

        self.assertEqual(len(created), 2)
        recipients = set(Notification.objects.values_list('recipient_id', flat=True))
        self.assertEqual(recipients, {self.admin.id, self.backoffice.id})

    def test_notify_role_without_recipients(self):
        self.assertEqual(NotificationService.notify_role((User.ROLE_FINANCE,), EventLog.APPROVAL, "t", "m"), [])

    def test_read_state(self):
        first = NotificationService.create_notification(self.agent, EventLog.APPROVAL, "Approved", "Client approved")
        NotificationService.create_notification(self.agent, EventLog.REJECTION, "Rejected", "Client rejected")

        self.assertEqual(NotificationService.get_unread_count(self.agent), 2)
        self.assertFalse(NotificationService.mark_as_read(first.id, self.admin))
        self.assertTrue(NotificationService.mark_as_read(first.id, self.agent))
        self.assertEqual(len(NotificationService.get_user_notifications(self.agent, unread_only=True)), 1)
        self.assertEqual(NotificationService.mark_all_as_read(self.agent), 1)
        self.assertEqual(NotificationService.get_unread_count(self.agent), 0)
