from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import Client
from partners.models import Partner, ProfitShareDetail, ProfitShareRule
from services.partner_service import PartnerService
from services.profit_share_service import ProfitShareService


def make_rule(partner, **overrides):
    values = dict(
        partner=partner,
        name="Standard split",
        partner_percent=Decimal('30'),
        company_percent=Decimal('70'),
        effective_from=timezone.now() - timedelta(days=1),
    )
    values.update(overrides)
    return ProfitShareRule.objects.create(**values)


class PartnerServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.partner = Partner.objects.create(name='Northside Referrals')

    def test_create_partner(self):
        result = PartnerService(self.admin).create_partner({'name': '  Acme Affiliates ', 'type': 'affiliate'})

        self.assertTrue(result.success)
        self.assertEqual(result.data.name, 'Acme Affiliates')
        self.assertEqual(result.data.type, 'affiliate')

    def test_partner_name_required(self):
        result = PartnerService(self.admin).create_partner({'name': ' '})
        self.assertEqual(result.error, "Partner name is required")

    def test_agents_denied(self):
        result = PartnerService(self.agent).create_partner({'name': 'Acme'})
        self.assertEqual(result.error, "Insufficient permissions")

    def test_delete_blocked_while_clients_assigned(self):
        Client.objects.create(first_name='Jo', last_name='Park', partner=self.partner)

        result = PartnerService(self.admin).delete_partner(self.partner.id)

        self.assertEqual(result.error, "Cannot delete partner with 1 assigned client(s). Reassign them first.")
        self.assertTrue(Partner.objects.filter(pk=self.partner.id).exists())

    def test_delete_partner(self):
        result = PartnerService(self.admin).delete_partner(self.partner.id)
        self.assertTrue(result.success)
        self.assertFalse(Partner.objects.exists())

    def test_assign_and_unassign_client(self):
        client = Client.objects.create(first_name='Jo', last_name='Park')
        service = PartnerService(self.admin)

        self.assertTrue(service.assign_client_to_partner(client.id, self.partner.id).success)
        client.refresh_from_db()
        self.assertEqual(client.partner, self.partner)

        self.assertTrue(service.assign_client_to_partner(client.id, None).success)
        client.refresh_from_db()
        self.assertIsNone(client.partner)
        self.assertEqual(client.events.count(), 2)

    def test_bulk_assign(self):
        ids = [Client.objects.create(first_name='C', last_name=str(i)).id for i in range(3)]

        result = PartnerService(self.admin).bulk_assign_partner(ids, self.partner.id)

        self.assertEqual(result.data, {'updated': 3})
        self.assertEqual(self.partner.clients.count(), 3)


class ProfitShareServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.partner = Partner.objects.create(name='Northside Referrals')

    def test_percentages_cannot_exceed_100(self):
        result = ProfitShareService(self.admin).create_rule({
            'partner_id': self.partner.id,
            'name': 'Too generous',
            'partner_percent': Decimal('60'),
            'company_percent': Decimal('50'),
        })
        self.assertEqual(result.error, "Partner % + Company % cannot exceed 100%")

    def test_update_checks_merged_percentages(self):
        rule = make_rule(self.partner)
        result = ProfitShareService(self.admin).update_rule(rule.id, {'partner_percent': Decimal('31')})
        self.assertEqual(result.error, "Partner % + Company % cannot exceed 100%")

    def test_percentage_split_with_fees(self):
        make_rule(self.partner, fee_percent=Decimal('2'), fee_fixed=Decimal('5'))

        detail = ProfitShareService(self.admin).calculate_profit_share(self.partner.id, Decimal('1000'), 'deposits')

        self.assertEqual(detail.fee_amount, Decimal('25.00'))
        self.assertEqual(detail.net_amount, Decimal('975.00'))
        self.assertEqual(detail.partner_amount, Decimal('292.50'))
        self.assertEqual(detail.company_amount, Decimal('682.50'))

    def test_fixed_split(self):
        make_rule(self.partner, split_type=ProfitShareRule.SPLIT_FIXED, partner_percent=None,
                  company_percent=None, fixed_amount=Decimal('40'))

        detail = ProfitShareService(self.admin).calculate_profit_share(self.partner.id, Decimal('100'), 'withdrawals')

        self.assertEqual(detail.partner_amount, Decimal('40.00'))
        self.assertEqual(detail.company_amount, Decimal('60.00'))

    def test_highest_priority_rule_wins(self):
        make_rule(self.partner, name='Low', priority=1)
        high = make_rule(self.partner, name='High', priority=5, partner_percent=Decimal('50'),
                         company_percent=Decimal('50'))
        make_rule(self.partner, name='Future', priority=10, effective_from=timezone.now() + timedelta(days=5))
        make_rule(self.partner, name='Inactive', priority=20, status='inactive')
        make_rule(self.partner, name='Withdrawals only', priority=30, applies_to='withdrawals')

        self.assertEqual(ProfitShareService(self.admin).find_applicable_rule(self.partner.id, 'deposits'), high)

    def test_amount_bounds(self):
        make_rule(self.partner, min_amount=Decimal('50'), max_amount=Decimal('500'))
        service = ProfitShareService(self.admin)

        self.assertIsNone(service.calculate_profit_share(self.partner.id, Decimal('10'), 'deposits'))
        self.assertIsNone(service.calculate_profit_share(self.partner.id, Decimal('900'), 'deposits'))
        self.assertIsNotNone(service.calculate_profit_share(self.partner.id, Decimal('100'), 'deposits'))

    def test_no_rule(self):
        detail = ProfitShareService(self.admin).calculate_profit_share(self.partner.id, Decimal('100'), 'deposits')
        self.assertIsNone(detail)

    def test_summary_and_payout(self):
        make_rule(self.partner)
        service = ProfitShareService(self.admin)
        first = service.calculate_profit_share(self.partner.id, Decimal('100'), 'deposits')
        second = service.calculate_profit_share(self.partner.id, Decimal('200'), 'deposits')

        self.assertTrue(service.mark_profit_share_paid(first.id).success)
        summary = service.get_partner_profit_summary(self.partner.id).data

        self.assertEqual(summary['transaction_count'], 2)
        self.assertEqual(summary['total_partner_amount'], Decimal('90.00'))
        self.assertEqual(summary['paid_amount'], Decimal('30.00'))
        self.assertEqual(summary['pending_amount'], Decimal('60.00'))

        result = service.bulk_mark_profit_shares_paid([first.id, second.id])
        self.assertEqual(result.data, {'updated': 1})

    def test_deactivate_rule(self):
        rule = make_rule(self.partner)
        ProfitShareService(self.admin).deactivate_rule(rule.id)
        self.assertIsNone(ProfitShareService(self.admin).find_applicable_rule(self.partner.id, 'deposits'))


class PartnerEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.finance = User.objects.create_user(
            email='finance@maestro.test', password='password123', role=User.ROLE_FINANCE
        )
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.partner = Partner.objects.create(name='Northside Referrals')
        Client.objects.create(first_name='Jo', last_name='Park', partner=self.partner)

    def test_finance_reads_partners(self):
        """
        Finance can list partners with their client counts.
        """
        self.client.force_authenticate(user=self.finance)
        response = self.client.get(reverse('partner-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['client_count'], 1)

    def test_finance_cannot_create(self):
        self.client.force_authenticate(user=self.finance)
        response = self.client.post(reverse('partner-list'), {'name': 'Acme'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_agents_denied(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('partner-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_partner(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('partner-list'), {'name': 'Acme', 'type': 'investor'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['name'], 'Acme')

    def test_delete_blocked(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('partner-detail', args=[self.partner.id]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Reassign them first", response.data['error'])

    def test_create_rule_validation(self):
        self.client.force_authenticate(user=self.admin)
        data = {'partner_id': self.partner.id, 'name': 'Split', 'partner_percent': '60', 'company_percent': '50'}

        response = self.client.post(reverse('profit-share-rule-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Partner % + Company % cannot exceed 100%")

    def test_create_rule(self):
        self.client.force_authenticate(user=self.admin)
        data = {'partner_id': self.partner.id, 'name': 'Split', 'partner_percent': '40', 'company_percent': '60'}

        response = self.client.post(reverse('profit-share-rule-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['partner'], self.partner.id)
        self.assertEqual(ProfitShareRule.objects.get().partner_percent, Decimal('40'))

    def test_profit_summary(self):
        make_rule(self.partner)
        ProfitShareService(self.admin).calculate_profit_share(self.partner.id, Decimal('100'), 'deposits')
        self.client.force_authenticate(user=self.finance)

        response = self.client.get(reverse('partner-profit-summary', args=[self.partner.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['transaction_count'], 1)
        self.assertEqual(len(response.data['data']['details']), 1)
        self.assertEqual(ProfitShareDetail.objects.count(), 1)
