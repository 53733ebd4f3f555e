from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from clients.models import Client, EventLog
from services.hierarchy_service import HierarchyService, get_all_subordinate_ids
from services.user_service import UserService, split_name
from .models import User


class AuthTests(APITestCase):
    """
    Test suite for the authentication app.
    """
    def setUp(self):
        # Login is throttled per client address
        cache.clear()
        self.user = User.objects.create_user(
            email='testuser@example.com',
            password='testpassword',
            role=User.ROLE_AGENT,
            first_name='Test',
            last_name='User',
        )
        self.login_url = reverse('login')
        self.logout_url = reverse('logout')
        self.valid_payload = {
            'email': 'testuser@example.com',
            'password': 'testpassword'
        }

    def test_successful_login(self):
        """
        Ensure a user can log in with valid credentials.
        """
        response = self.client.post(self.login_url, self.valid_payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_AGENT)
        self.assertEqual(response.data['user']['name'], 'Test User')

        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_failed_login(self):
        """
        Ensure login fails with invalid credentials.
        """
        invalid_payload = {
            'email': 'testuser@example.com',
            'password': 'wrongpassword'
        }
        response = self.client.post(self.login_url, invalid_payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')

    def test_inactive_user_cannot_login(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post(self.login_url, self.valid_payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_is_throttled(self):
        invalid_payload = {'email': 'testuser@example.com', 'password': 'wrongpassword'}
        for _ in range(5):
            self.client.post(self.login_url, invalid_payload, format='json')

        response = self.client.post(self.login_url, self.valid_payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    def test_successful_logout(self):
        """
        Ensure a logged-in user can successfully log out.
        """
        # First, log in to get a token
        login_response = self.client.post(self.login_url, self.valid_payload, format='json')
        token = login_response.data['token']

        # Authenticate the client with the token
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + token)

        # Now, attempt to log out
        logout_response = self.client.post(self.logout_url)
        self.assertEqual(logout_response.status_code, status.HTTP_200_OK)
        self.assertFalse(Token.objects.filter(key=token).exists())

        # The token no longer authenticates
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.backoffice = User.objects.create_user(
            email='bo@maestro.test', password='password123', role=User.ROLE_BACKOFFICE
        )
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)

    def payload(self, **overrides):
        data = {'name': 'Rita Gomez', 'email': 'Rita@Maestro.test', 'password': 'longenough', 'role': User.ROLE_AGENT}
        data.update(overrides)
        return data

    def test_split_name(self):
        self.assertEqual(split_name(' Rita  de la Cruz '), ('Rita', 'de la Cruz'))
        self.assertEqual(split_name('Cher'), ('Cher', ''))

    def test_create_user(self):
        result = UserService(self.admin).create_user(self.payload(supervisor_id=self.agent.id))

        self.assertTrue(result.success)
        user = result.data
        self.assertEqual(user.email, 'rita@maestro.test')
        self.assertEqual((user.first_name, user.last_name), ('Rita', 'Gomez'))
        self.assertEqual(user.supervisor, self.agent)
        self.assertTrue(user.check_password('longenough'))
        self.assertTrue(EventLog.objects.filter(event_type=EventLog.USER_CREATED, user=self.admin).exists())

    def test_create_user_validation(self):
        service = UserService(self.admin)
        cases = [
            ({'name': ''}, "Name is required"),
            ({'email': ''}, "Email is required"),
            ({'password': 'short'}, "Password must be at least 8 characters"),
            ({'role': 'OWNER'}, "Invalid role"),
            ({'email': 'AGENT@maestro.test'}, "Email is already in use"),
        ]
        for overrides, error in cases:
            self.assertEqual(service.create_user(self.payload(**overrides)).error, error, overrides)

    def test_backoffice_limited_to_agents(self):
        service = UserService(self.backoffice)

        result = service.create_user(self.payload(role=User.ROLE_FINANCE))
        self.assertEqual(result.error, "Backoffice users can only create Agent accounts")

        result = service.update_user(self.agent.id, {'role': User.ROLE_ADMIN})
        self.assertEqual(result.error, "Backoffice users can only assign Agent role")

        result = service.reset_user_password(self.admin.id, 'newpassword')
        self.assertEqual(result.error, "Backoffice users can only reset Agent passwords")

    def test_backoffice_cannot_edit_admins(self):
        service = UserService(self.backoffice)

        result = service.update_user(self.admin.id, {'role': User.ROLE_AGENT})
        self.assertEqual(result.error, "Backoffice users can only edit Agent accounts")

        result = service.update_user(self.admin.id, {'email': 'taken-over@maestro.test', 'name': 'Someone Else'})
        self.assertEqual(result.error, "Backoffice users can only edit Agent accounts")

        self.admin.refresh_from_db()
        self.assertEqual((self.admin.email, self.admin.role), ('admin@maestro.test', User.ROLE_ADMIN))

    def test_backoffice_edits_own_profile(self):
        result = UserService(self.backoffice).update_user(self.backoffice.id, {'phone': '555-0111'})
        self.assertTrue(result.success)

    def test_agents_cannot_manage_users(self):
        self.assertEqual(UserService(self.agent).create_user(self.payload()).error, "Insufficient permissions")

    def test_update_user(self):
        result = UserService(self.admin).update_user(self.agent.id, {'name': 'Ana Diaz', 'phone': '555-0110'})

        self.assertTrue(result.success)
        self.agent.refresh_from_db()
        self.assertEqual(self.agent.name, 'Ana Diaz')
        self.assertEqual(self.agent.phone, '555-0110')

    def test_cannot_change_own_role(self):
        result = UserService(self.admin).update_user(self.admin.id, {'role': User.ROLE_AGENT})
        self.assertEqual(result.error, "Cannot change your own role")

    def test_update_email_conflict(self):
        result = UserService(self.admin).update_user(self.agent.id, {'email': 'bo@maestro.test'})
        self.assertEqual(result.error, "Email is already in use")

    def test_toggle_active(self):
        service = UserService(self.admin)

        result = service.toggle_user_active(self.agent.id)
        self.assertEqual(result.data, {'user_id': self.agent.id, 'is_active': False})
        self.assertTrue(EventLog.objects.filter(event_type=EventLog.USER_DEACTIVATED).exists())

        result = service.toggle_user_active(self.agent.id)
        self.assertTrue(result.data['is_active'])
        self.assertTrue(EventLog.objects.filter(event_type=EventLog.USER_UPDATED).exists())

    def test_toggle_restrictions(self):
        self.assertEqual(UserService(self.admin).toggle_user_active(self.admin.id).error,
                         "Cannot deactivate yourself")
        self.assertEqual(UserService(self.backoffice).toggle_user_active(self.agent.id).error,
                         "Only admins can toggle user status")

    def test_reset_password(self):
        self.assertEqual(UserService(self.admin).reset_user_password(self.agent.id, 'short').error,
                         "Password must be at least 8 characters")

        result = UserService(self.backoffice).reset_user_password(self.agent.id, 'freshpass1')

        self.assertTrue(result.success)
        self.agent.refresh_from_db()
        self.assertTrue(self.agent.check_password('freshpass1'))


class HierarchyServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.director = User.objects.create_user(email='director@maestro.test', password='password123',
                                                 role=User.ROLE_AGENT, tier='4-star', star_level=4)
        self.lead = User.objects.create_user(email='lead@maestro.test', password='password123',
                                             role=User.ROLE_AGENT, tier='2-star', star_level=2,
                                             supervisor=self.director)
        self.rookie = User.objects.create_user(email='rookie@maestro.test', password='password123',
                                               role=User.ROLE_AGENT, supervisor=self.lead)
        self.second = User.objects.create_user(email='second@maestro.test', password='password123',
                                               role=User.ROLE_AGENT, supervisor=self.lead)
        for intake_status in (Client.STATUS_APPROVED, Client.STATUS_REJECTED, Client.STATUS_PENDING):
            Client.objects.create(first_name='C', last_name=intake_status, agent=self.rookie,
                                  intake_status=intake_status)

    def test_subordinate_ids(self):
        self.assertEqual(sorted(get_all_subordinate_ids(self.director.id)),
                         sorted([self.lead.id, self.rookie.id, self.second.id]))
        self.assertEqual(get_all_subordinate_ids(self.rookie.id), [])

    def test_inactive_agents_are_left_out(self):
        self.second.is_active = False
        self.second.save()
        self.assertEqual(get_all_subordinate_ids(self.lead.id), [self.rookie.id])

    def test_agent_hierarchy(self):
        result = HierarchyService(self.admin).get_agent_hierarchy(self.lead.id)

        self.assertTrue(result.success)
        self.assertEqual([row['id'] for row in result.data['supervisor_chain']], [self.director.id])
        self.assertEqual(result.data['team_size'], 2)
        tree = result.data['subordinate_tree']
        self.assertEqual(tree['id'], self.lead.id)
        self.assertEqual({node['id'] for node in tree['subordinates']}, {self.rookie.id, self.second.id})

        rookie = HierarchyService(self.admin).get_agent_hierarchy(self.rookie.id).data
        self.assertEqual([row['id'] for row in rookie['supervisor_chain']], [self.lead.id, self.director.id])
        self.assertEqual(rookie['agent']['success_rate'], 50)

    def test_supervisor_cycle(self):
        self.director.supervisor = self.rookie
        self.director.save()

        result = HierarchyService(self.admin).get_agent_hierarchy(self.lead.id)

        self.assertTrue(result.success)
        self.assertEqual([row['id'] for row in result.data['supervisor_chain']],
                         [self.director.id, self.rookie.id])
        self.assertEqual(sorted(get_all_subordinate_ids(self.lead.id)),
                         sorted([self.rookie.id, self.second.id, self.director.id]))

    def test_team_rollup(self):
        result = HierarchyService(self.director).get_team_rollup(self.director.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data, {
            'total_agents': 3,
            'active_agents': 3,
            'total_clients': 3,
            'approved_clients': 1,
            'team_success_rate': 33,
            'tier_breakdown': {'2-star': 1, 'rookie': 2},
        })

    def test_agent_access(self):
        self.assertTrue(HierarchyService(self.lead).get_agent_hierarchy(self.rookie.id).success)
        self.assertEqual(HierarchyService(self.rookie).get_agent_hierarchy(self.lead.id).error, "Unauthorized")
        self.assertEqual(HierarchyService(self.rookie).get_team_rollup(self.second.id).error, "Unauthorized")

    def test_unknown_agent(self):
        self.assertEqual(HierarchyService(self.admin).get_agent_hierarchy(99999).error, "Agent not found")
        self.assertEqual(HierarchyService(self.admin).get_team_rollup(99999).error, "Agent not found")
