from django.contrib.auth import get_user_model
from django.urls import reverse
from faker import Faker
from rest_framework import status
from rest_framework.test import APITestCase

from clients.models import Client

User = get_user_model()
fake = Faker()


class UserEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN,
            first_name='Ada', last_name='Admin',
        )
        self.backoffice = User.objects.create_user(
            email='bo@maestro.test', password='password123', role=User.ROLE_BACKOFFICE
        )
        self.agent = User.objects.create_user(
            email='agent@maestro.test', password='password123', role=User.ROLE_AGENT,
            first_name='Zed', last_name='Agent', supervisor=self.admin,
        )
        self.list_url = reverse('user-list')

    def test_health_check(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'status': 'healthy'})

    def test_profile(self):
        """
        The profile endpoint returns the signed-in user.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], self.agent.email)
        self.assertEqual(response.data['supervisor_name'], 'Ada Admin')

    def test_profile_requires_authentication(self):
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_agents_cannot_list_users(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_users_by_role(self):
        self.client.force_authenticate(user=self.backoffice)
        response = self.client.get(self.list_url, {'role': 'agent'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['results']], [self.agent.id])

    def test_create_user(self):
        self.client.force_authenticate(user=self.admin)
        data = {
            'name': f"{fake.first_name()} {fake.last_name()}",
            'email': fake.email(),
            'password': 'a_strong_password_123',
            'role': User.ROLE_FINANCE,
        }

        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['role'], User.ROLE_FINANCE)
        self.assertNotIn('password', response.data['data'])
        self.assertTrue(User.objects.filter(email=data['email'].lower()).exists())

    def test_create_user_duplicate_email(self):
        self.client.force_authenticate(user=self.admin)
        data = {'name': 'Dup User', 'email': self.agent.email, 'password': 'a_strong_password_123',
                'role': User.ROLE_AGENT}

        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Email is already in use")

    def test_create_user_missing_fields(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.list_url, {'email': fake.email()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_user(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(
            reverse('user-detail', args=[self.agent.id]), {'name': 'Zoe Agent'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['first_name'], 'Zoe')

    def test_toggle_active_admin_only(self):
        url = reverse('user-toggle-active', args=[self.agent.id])

        self.client.force_authenticate(user=self.backoffice)
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Only admins can toggle user status")

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['is_active'])

    def test_reset_password(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('user-reset-password', args=[self.agent.id]), {'new_password': 'brand-new-pass'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.agent.refresh_from_db()
        self.assertTrue(self.agent.check_password('brand-new-pass'))

    def test_kpis(self):
        Client.objects.create(first_name='Jo', last_name='Park', agent=self.agent, intake_status=Client.STATUS_APPROVED)
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('user-kpis', args=[self.agent.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['approved_clients'], 1)
        self.assertEqual(response.data['data']['success_rate'], 100)


class AgentViewEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.lead = User.objects.create_user(
            email='lead@maestro.test', password='password123', role=User.ROLE_AGENT,
            first_name='Lia', last_name='Lead', tier='2-star', star_level=2,
        )
        self.rookie = User.objects.create_user(
            email='rookie@maestro.test', password='password123', role=User.ROLE_AGENT,
            first_name='Rob', last_name='Rookie', supervisor=self.lead,
        )
        self.outsider = User.objects.create_user(
            email='outsider@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        Client.objects.create(first_name='Jo', last_name='Park', agent=self.rookie, intake_status=Client.STATUS_APPROVED)

    def test_lead_sees_own_hierarchy(self):
        self.client.force_authenticate(user=self.lead)

        response = self.client.get(reverse('user-hierarchy', args=[self.lead.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['team_size'], 1)
        self.assertEqual(data['supervisor_chain'], [])
        self.assertEqual(data['subordinate_tree']['subordinates'][0]['name'], 'Rob Rookie')

    def test_rookie_cannot_see_lead_hierarchy(self):
        self.client.force_authenticate(user=self.rookie)
        response = self.client.get(reverse('user-hierarchy', args=[self.lead.id]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Unauthorized')

    def test_team_rollup(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('user-team-rollup', args=[self.lead.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_clients'], 1)
        self.assertEqual(response.data['data']['team_success_rate'], 100)

    def test_agent_reads_own_earnings_and_dashboard(self):
        self.client.force_authenticate(user=self.rookie)

        response = self.client.get(reverse('user-earnings', args=[self.rookie.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['recent_transactions'], [])

        response = self.client.get(reverse('user-dashboard', args=[self.rookie.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_clients'], 1)

    def test_agent_cannot_read_other_earnings(self):
        self.client.force_authenticate(user=self.outsider)
        for name in ('user-earnings', 'user-dashboard'):
            response = self.client.get(reverse(name, args=[self.rookie.id]))
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, name)

    def test_staff_reads_any_dashboard(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('user-dashboard', args=[self.lead.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_clients'], 0)
