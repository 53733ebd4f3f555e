from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import EventLog
from notifications.models import Notification


class NotificationEndpointTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user1 = User.objects.create_user(email='user1@example.com', password='password123', role=User.ROLE_AGENT)
        cls.user2 = User.objects.create_user(email='user2@example.com', password='password123', role=User.ROLE_AGENT)

    def setUp(self):
        # Authenticate User 1
        self.client.force_authenticate(user=self.user1)

        # Create some notifications
        self.notification1 = Notification.objects.create(
            recipient=self.user1,
            title="Deadline approaching",
            message="Client Jo Park is due tomorrow.",
            notification_type=EventLog.DEADLINE_MISSED,
        )
        self.notification2 = Notification.objects.create(
            recipient=self.user1,
            title="Application approved",
            message="Client Sam Lee was approved.",
            notification_type=EventLog.APPROVAL,
            is_read=True,
        )
        self.other_notification = Notification.objects.create(
            recipient=self.user2,
            title="Not yours",
            message="Belongs to another agent.",
            notification_type=EventLog.APPROVAL,
        )

        # URLS
        self.list_url = reverse('notification-list')
        self.mark_as_read_url = reverse('notification-mark-as-read', kwargs={'pk': self.notification1.pk})

    def test_list_notifications(self):
        """
        A user should only see their own notifications.
        """
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 2)

    def test_list_unread_notifications(self):
        """
        A user should be able to filter for unread notifications.
        """
        response = self.client.get(self.list_url, {'unread_only': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['id'], self.notification1.id)

    def test_filter_by_type(self):
        response = self.client.get(self.list_url, {'type': EventLog.APPROVAL})
        self.assertEqual([row['id'] for row in response.data['results']], [self.notification2.id])

    def test_mark_notification_as_read(self):
        """
        A user should be able to mark a notification as read.
        """
        self.assertFalse(Notification.objects.get(pk=self.notification1.pk).is_read)
        response = self.client.post(self.mark_as_read_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Notification.objects.get(pk=self.notification1.pk).is_read)

    def test_cannot_mark_others_notification(self):
        url = reverse('notification-mark-as-read', kwargs={'pk': self.other_notification.pk})
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(Notification.objects.get(pk=self.other_notification.pk).is_read)

    def test_unread_count_and_mark_all(self):
        response = self.client.get(reverse('notification-unread-count'))
        self.assertEqual(response.data, {'unread_count': 1})

        response = self.client.post(reverse('notification-mark-all-as-read'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(reverse('notification-unread-count'))
        self.assertEqual(response.data, {'unread_count': 0})

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
