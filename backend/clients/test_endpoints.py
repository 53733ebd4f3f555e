import shutil
import tempfile
from io import BytesIO

from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from faker import Faker
from PIL import Image
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import Client, ClientPlatform, ExtensionRequest
from clients.platforms import ALL_PLATFORMS, BETMGM, DRAFTKINGS
from todos.models import ToDo

fake = Faker()

MEDIA_ROOT = tempfile.mkdtemp()


class ClientEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        self.finance = User.objects.create_user(
            email='finance@maestro.test', password='password123', role=User.ROLE_FINANCE
        )

        self.own_client = self.create_client(self.agent)
        self.foreign_client = self.create_client(self.other_agent)

    def create_client(self, agent, status=Client.STATUS_PENDING, **extra):
        client = Client.objects.create(
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone=fake.msisdn(),
            agent=agent,
            intake_status=status,
            gmail_account='client@gmail.com',
            gmail_password='hunter22',
            **extra
        )
        ClientPlatform.objects.bulk_create([
            ClientPlatform(client=client, platform_type=platform_type) for platform_type in ALL_PLATFORMS
        ])
        return client

    def test_requires_authentication(self):
        """
        Anonymous requests are rejected.
        """
        response = self.client.get(reverse('client-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_agent_sees_only_own_clients(self):
        """
        Agents only list the clients assigned to them.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('client-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [row['id'] for row in response.data['results']]
        self.assertEqual(ids, [self.own_client.id])

        response = self.client.get(reverse('client-detail', args=[self.foreign_client.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_sees_all_clients(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('client-list'), {'intake_status': 'PENDING'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

    def test_finance_cannot_use_client_endpoints(self):
        self.client.force_authenticate(user=self.finance)
        response = self.client.get(reverse('client-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_gmail_password_hidden_from_agents(self):
        """
        Only staff receive the stored Gmail password.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('client-detail', args=[self.own_client.id]))
        self.assertNotIn('gmail_password', response.data)
        self.assertEqual(len(response.data['platforms']), 11)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('client-detail', args=[self.own_client.id]))
        self.assertEqual(response.data['gmail_password'], 'hunter22')

    def test_create_client(self):
        self.client.force_authenticate(user=self.agent)
        data = {'first_name': 'Sam', 'last_name': 'Lee', 'phone': '555-0100'}

        response = self.client.post(reverse('client-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['name'], 'Sam Lee')
        self.assertEqual(response.data['data']['agent'], self.agent.id)

    def test_create_client_missing_fields(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('client-list'), {'first_name': 'Sam'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_prequalification_errors(self):
        """
        Every missing prequalification field is reported together.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('client-submit-prequalification'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(len(response.data['errors']), 5)

    def test_phase(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('client-phase', args=[self.own_client.id]))
        self.assertEqual(response.data['data'], {'client_id': self.own_client.id, 'phase': 1})

    def test_agent_cannot_approve_prequal(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('client-approve-prequal', args=[self.own_client.id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_approves_prequal(self):
        client = self.create_client(self.agent, status=Client.STATUS_PREQUAL_REVIEW)
        ClientPlatform.objects.filter(client=client, platform_type=BETMGM).update(
            status=ClientPlatform.STATUS_PENDING_REVIEW
        )
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('client-approve-prequal', args=[client.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['new_status'], Client.STATUS_PREQUAL_APPROVED)

    def test_invalid_transition(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('client-transition', args=[self.own_client.id]), {'status': 'APPROVED'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Cannot transition from PENDING to APPROVED")

    def test_assign_phone_and_start_execution(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            reverse('client-assign-phone', args=[self.own_client.id]), {'phone_number': '555-0199'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(reverse('client-start-execution', args=[self.own_client.id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['todos_created'], 12)
        self.assertEqual(ToDo.objects.filter(client=self.own_client, assigned_to=self.agent).count(), 14)

    def test_request_extension(self):
        client = self.create_client(self.agent, status=Client.STATUS_IN_EXECUTION)
        Client.objects.filter(pk=client.id).update(execution_deadline=client.created_at)
        self.client.force_authenticate(user=self.agent)

        response = self.client.post(
            reverse('client-request-extension', args=[client.id]),
            {'reason': 'Waiting on the bank to open the account'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(ExtensionRequest.objects.filter(client=client, status=ExtensionRequest.STATUS_PENDING).exists())

        self.client.force_authenticate(user=self.admin)
        request_id = response.data['data']['request_id']
        response = self.client.post(reverse('extension-request-approve', args=[request_id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_balance(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('client-balance', args=[self.own_client.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['client_id'], self.own_client.id)
        self.assertEqual(response.data['data']['breakdown'], {})

    def test_events_paginated(self):
        self.client.force_authenticate(user=self.admin)
        self.client.post(reverse('client-transition', args=[self.own_client.id]),
                         {'status': 'PREQUAL_REVIEW'}, format='json')

        response = self.client.get(reverse('client-events', args=[self.own_client.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['event_type'], 'STATUS_CHANGE')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PlatformScreenshotEndpointTests(APITestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.client_obj = Client.objects.create(first_name='Jo', last_name='Park', phone='555-0101', agent=self.agent,
                                                intake_status=Client.STATUS_IN_EXECUTION)
        self.url = reverse('client-platform-screenshots', args=[self.client_obj.id])

    def image(self):
        buffer = BytesIO()
        Image.new('RGB', (4, 4)).save(buffer, format='PNG')
        return SimpleUploadedFile('proof.png', buffer.getvalue(), content_type='image/png')

    def test_upload_screenshot(self):
        """
        Agents upload a screenshot and the platform moves to review.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(self.url, {'platform_type': DRAFTKINGS, 'file': self.image()}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['path'].startswith(settings.MEDIA_URL))
        platform = ClientPlatform.objects.get(client=self.client_obj, platform_type=DRAFTKINGS)
        self.assertEqual(platform.status, ClientPlatform.STATUS_PENDING_REVIEW)
        self.assertEqual(len(platform.screenshots), 1)

    def test_upload_rejects_text_file(self):
        self.client.force_authenticate(user=self.agent)
        upload = SimpleUploadedFile('notes.txt', b'plain text', content_type='text/plain')

        response = self.client.post(self.url, {'platform_type': DRAFTKINGS, 'file': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid file type. Please upload JPG, PNG, or WebP.')

    def test_remove_screenshot(self):
        self.client.force_authenticate(user=self.agent)
        path = self.client.post(
            self.url, {'platform_type': DRAFTKINGS, 'file': self.image()}, format='multipart'
        ).data['data']['path']
        remove_url = reverse('client-platform-screenshots-remove', args=[self.client_obj.id])

        response = self.client.post(remove_url, {'platform_type': DRAFTKINGS, 'path': path}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], ClientPlatform.STATUS_PENDING_UPLOAD)
        platform = ClientPlatform.objects.get(client=self.client_obj, platform_type=DRAFTKINGS)
        self.assertEqual(platform.screenshots, [])

    def test_remove_unknown_screenshot(self):
        ClientPlatform.objects.create(client=self.client_obj, platform_type=DRAFTKINGS)
        self.client.force_authenticate(user=self.agent)
        remove_url = reverse('client-platform-screenshots-remove', args=[self.client_obj.id])

        response = self.client.post(
            remove_url, {'platform_type': DRAFTKINGS, 'path': '/media/uploads/elsewhere.png'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Screenshot not found")
