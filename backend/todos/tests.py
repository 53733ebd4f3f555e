import os
import shutil
import tempfile
from datetime import timedelta
from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from PIL import Image
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import Client, ClientPlatform, EventLog
from clients.platforms import FANDUEL
from notifications.models import Notification
from services.todo_service import ToDoService, detect_screenshot_content
from todos.models import ToDo

MEDIA_ROOT = tempfile.mkdtemp()


def png(name):
    buffer = BytesIO()
    Image.new('RGB', (4, 4)).save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class DetectScreenshotContentTests(TestCase):

    def test_file_name_hints(self):
        self.assertEqual(detect_screenshot_content('bank_login.png')['content_type'], 'Online Banking Login')
        self.assertEqual(detect_screenshot_content('Dashboard.PNG')['content_type'], 'Balance Screenshot')
        self.assertEqual(detect_screenshot_content('address-proof.jpg')['content_type'], 'Address Verification')

    def test_default_is_registration(self):
        detection = detect_screenshot_content('IMG_2041.png', FANDUEL)
        self.assertEqual(detection['content_type'], 'Platform Registration')
        self.assertEqual(detection['extracted']['platform'], FANDUEL)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ToDoServiceTests(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        self.client_obj = Client.objects.create(first_name='Jo', last_name='Park', phone='555-0101',
                                                agent=self.agent, intake_status=Client.STATUS_IN_EXECUTION)
        self.platform = ClientPlatform.objects.create(client=self.client_obj, platform_type=FANDUEL)
        self.todo = ToDo.objects.create(
            client=self.client_obj,
            assigned_to=self.agent,
            title="Upload screenshot for FanDuel",
            type=ToDo.TYPE_UPLOAD_SCREENSHOT,
            platform_type=FANDUEL,
            due_date=timezone.now() + timedelta(days=1),
        )

    def test_upload_returns_detections(self):
        result = ToDoService(self.agent).upload_todo_screenshots(self.todo.id, [png('login.png'), png('other.png')])

        self.assertTrue(result.success)
        detections = result.data['detections']
        self.assertEqual(len(detections), 2)
        self.assertEqual(detections[0]['content_type'], 'Online Banking Login')
        self.assertTrue(detections[0]['path'].startswith(f"/media/uploads/todos/{self.todo.id}/"))

    def test_upload_limits(self):
        service = ToDoService(self.agent)
        self.assertEqual(service.upload_todo_screenshots(self.todo.id, []).error, "No files provided")

        files = [png(f"shot{i}.png") for i in range(6)]
        self.assertEqual(service.upload_todo_screenshots(self.todo.id, files).error, "Maximum 5 files allowed")

    def test_invalid_file_stores_nothing(self):
        text = SimpleUploadedFile('notes.png', b'not an image', content_type='image/png')
        todo_dir = os.path.join(MEDIA_ROOT, 'uploads', 'todos', str(self.todo.id))
        before = set(os.listdir(todo_dir)) if os.path.isdir(todo_dir) else set()

        result = ToDoService(self.agent).upload_todo_screenshots(self.todo.id, [png('login.png'), text])

        self.assertEqual(result.error, 'Invalid file type. Please upload JPG, PNG, or WebP.')
        after = set(os.listdir(todo_dir)) if os.path.isdir(todo_dir) else set()
        self.assertEqual(after, before)

    def test_other_agents_todo(self):
        result = ToDoService(self.other_agent).upload_todo_screenshots(self.todo.id, [png('a.png')])
        self.assertEqual(result.error, "To-Do not found")

    def test_confirm_completes_todo_and_platform(self):
        detections = [{
            'path': '/media/uploads/todos/1/a.png',
            'content_type': 'Platform Registration',
            'confidence': 0.85,
            'extracted': {'platform': FANDUEL, 'username': 'jpark'},
        }]

        result = ToDoService(self.agent).confirm_todo_upload(self.todo.id, detections)

        self.assertTrue(result.success)
        self.todo.refresh_from_db()
        self.assertEqual(self.todo.status, ToDo.STATUS_COMPLETED)
        self.assertIsNotNone(self.todo.completed_at)
        self.assertEqual(self.todo.screenshots, ['/media/uploads/todos/1/a.png'])
        self.platform.refresh_from_db()
        self.assertEqual(self.platform.status, ClientPlatform.STATUS_PENDING_REVIEW)
        self.assertEqual(self.platform.username, 'jpark')
        self.assertTrue(self.client_obj.events.filter(event_type=EventLog.TODO_COMPLETED).exists())
        self.assertTrue(Notification.objects.filter(recipient=self.admin, title="Task completed").exists())

    def test_extension(self):
        due = self.todo.due_date

        result = ToDoService(self.agent).request_todo_extension(self.todo.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data['due_date'], due + timedelta(days=3))
        self.assertEqual(result.data['extensions_used'], 1)

    def test_extension_limit(self):
        ToDo.objects.filter(pk=self.todo.id).update(extensions_used=3)
        result = ToDoService(self.agent).request_todo_extension(self.todo.id)
        self.assertEqual(result.error, "No extensions remaining")


class ToDoEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        client = Client.objects.create(first_name='Jo', last_name='Park', phone='555-0101', agent=self.agent)
        self.open_todo = ToDo.objects.create(client=client, assigned_to=self.agent, title="Open",
                                             type=ToDo.TYPE_VERIFICATION,
                                             due_date=timezone.now() - timedelta(hours=2))
        ToDo.objects.create(client=client, assigned_to=self.agent, title="Done",
                            type=ToDo.TYPE_VERIFICATION, status=ToDo.STATUS_COMPLETED)

    def test_agent_lists_own_todos(self):
        """
        Agents only see the to-dos assigned to them.
        """
        self.client.force_authenticate(user=self.other_agent)
        response = self.client.get(reverse('todo-list'))
        self.assertEqual(response.data['count'], 0)

        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('todo-list'))
        self.assertEqual(response.data['count'], 2)

    def test_open_and_overdue_filters(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('todo-list'), {'open': 'true'})
        self.assertEqual([row['id'] for row in response.data['results']], [self.open_todo.id])

        response = self.client.get(reverse('todo-list'), {'overdue': 'true'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['extensions_remaining'], 3)

    def test_request_extension(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('todo-request-extension', args=[self.open_todo.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['extensions_used'], 1)

    def test_confirm_upload_requires_detections(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('todo-confirm-upload', args=[self.open_todo.id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
