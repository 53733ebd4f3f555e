from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import Client
from commission.models import BonusAllocation, BonusPool
from funds.models import Transaction
from services.commission_service import CommissionService, star_level_for


class StarLevelTests(TestCase):

    def test_thresholds(self):
        cases = [
            (0, ('rookie', 0)),
            (2, ('rookie', 0)),
            (3, ('1-star', 1)),
            (6, ('1-star', 1)),
            (7, ('2-star', 2)),
            (12, ('2-star', 2)),
            (13, ('3-star', 3)),
            (20, ('3-star', 3)),
            (21, ('4-star', 4)),
            (100, ('4-star', 4)),
        ]
        for approved, expected in cases:
            self.assertEqual(star_level_for(approved), expected, approved)


class BonusPoolTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.director = User.objects.create_user(email='director@maestro.test', password='password123',
                                                 role=User.ROLE_AGENT, star_level=4, tier='4-star')
        self.lead = User.objects.create_user(email='lead@maestro.test', password='password123',
                                             role=User.ROLE_AGENT, star_level=2, tier='2-star',
                                             supervisor=self.director)
        self.rookie = User.objects.create_user(email='rookie@maestro.test', password='password123',
                                               role=User.ROLE_AGENT, supervisor=self.lead)

    def approved_client(self, agent):
        return Client.objects.create(first_name='Pat', last_name='Kim', agent=agent,
                                     intake_status=Client.STATUS_APPROVED)

    def amounts_by_agent(self, pool_id):
        result = {}
        for allocation in BonusAllocation.objects.filter(bonus_pool_id=pool_id):
            result[allocation.agent_id] = result.get(allocation.agent_id, Decimal('0')) + allocation.amount
        return result

    def test_slices_climb_the_chain(self):
        client = self.approved_client(self.rookie)

        result = CommissionService(self.admin).create_bonus_pool(client.id)

        self.assertTrue(result.success)
        self.assertTrue(result.data['created'])
        self.assertEqual(result.data['distributed_slices'], 4)
        self.assertEqual(result.data['recycled_slices'], 0)
        self.assertEqual(self.amounts_by_agent(result.data['pool_id']), {
            self.rookie.id: Decimal('200.00'),
            self.lead.id: Decimal('100.00'),
            self.director.id: Decimal('100.00'),
        })
        pool = BonusPool.objects.get(pk=result.data['pool_id'])
        self.assertEqual(pool.status, BonusPool.STATUS_DISTRIBUTED)
        self.assertEqual(pool.total_amount, Decimal('400.00'))
        self.assertEqual([entry['agent_id'] for entry in pool.hierarchy_snapshot], [self.lead.id, self.director.id])

    def test_unused_slices_are_recycled(self):
        solo = User.objects.create_user(email='solo@maestro.test', password='password123',
                                        role=User.ROLE_AGENT, star_level=1, tier='1-star')
        client = self.approved_client(solo)

        result = CommissionService(self.admin).create_bonus_pool(client.id)

        self.assertEqual(result.data['distributed_slices'], 1)
        self.assertEqual(result.data['recycled_slices'], 3)
        self.assertFalse(BonusAllocation.objects.filter(type=BonusAllocation.TYPE_BACKFILL).exists())
        self.assertEqual(self.amounts_by_agent(result.data['pool_id']), {solo.id: Decimal('250.00')})

    def test_supervisor_cycle_terminates(self):
        a = User.objects.create_user(email='a@maestro.test', password='password123', role=User.ROLE_AGENT,
                                     star_level=1)
        b = User.objects.create_user(email='b@maestro.test', password='password123', role=User.ROLE_AGENT,
                                     star_level=1, supervisor=a)
        a.supervisor = b
        a.save()
        client = self.approved_client(a)

        result = CommissionService(self.admin).create_bonus_pool(client.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data['distributed_slices'], 2)
        self.assertEqual(result.data['recycled_slices'], 2)

    def test_pool_is_created_once(self):
        client = self.approved_client(self.rookie)
        first = CommissionService(self.admin).create_bonus_pool(client.id)

        second = CommissionService(self.admin).create_bonus_pool(client.id)

        self.assertEqual(second.data, {'pool_id': first.data['pool_id'], 'created': False})
        self.assertEqual(BonusAllocation.objects.count(), 3)

    def test_requires_agent(self):
        client = Client.objects.create(first_name='No', last_name='Agent', intake_status=Client.STATUS_APPROVED)
        result = CommissionService(self.admin).create_bonus_pool(client.id)
        self.assertEqual(result.error, "Client has no assigned agent")

    def test_star_level_recalculated(self):
        for _ in range(3):
            client = self.approved_client(self.rookie)
            CommissionService(self.admin).create_bonus_pool(client.id)

        self.rookie.refresh_from_db()
        self.assertEqual((self.rookie.star_level, self.rookie.tier), (1, '1-star'))

    def test_summary(self):
        client = self.approved_client(self.rookie)
        CommissionService(self.admin).create_bonus_pool(client.id)

        summary = CommissionService(self.admin).get_agent_commission_summary(self.lead.id).data

        self.assertEqual(summary['total_earned'], Decimal('100.00'))
        self.assertEqual(summary['pending'], Decimal('100.00'))
        self.assertEqual(summary['paid'], Decimal('0.00'))
        self.assertEqual(summary['direct_bonuses'], 0)
        self.assertEqual(summary['star_slices'], 2)

    def test_mark_paid_writes_ledger_row(self):
        client = self.approved_client(self.rookie)
        CommissionService(self.admin).create_bonus_pool(client.id)
        allocation = BonusAllocation.objects.get(agent=self.rookie, type=BonusAllocation.TYPE_DIRECT)

        result = CommissionService(self.admin).mark_allocation_paid(allocation.id)

        self.assertTrue(result.success)
        allocation.refresh_from_db()
        self.assertEqual(allocation.status, BonusAllocation.STATUS_PAID)
        payout = Transaction.objects.get(type=Transaction.COMMISSION_PAYOUT)
        self.assertEqual(payout.amount, Decimal('200.00'))
        self.assertEqual(payout.client, client)
        self.assertEqual(payout.signed_amount, Decimal('0.00'))

        again = CommissionService(self.admin).mark_allocation_paid(allocation.id)
        self.assertEqual(again.error, "Allocation is already paid")

    def test_bulk_mark_paid(self):
        client = self.approved_client(self.rookie)
        CommissionService(self.admin).create_bonus_pool(client.id)
        ids = list(BonusAllocation.objects.values_list('id', flat=True))

        self.assertEqual(CommissionService(self.admin).bulk_mark_paid([]).error, "No allocations selected")
        result = CommissionService(self.admin).bulk_mark_paid(ids)

        self.assertEqual(result.data, {'updated': 3})
        self.assertEqual(Transaction.objects.filter(type=Transaction.COMMISSION_PAYOUT).count(), 3)

    def test_agents_cannot_pay(self):
        result = CommissionService(self.lead).mark_allocation_paid(1)
        self.assertEqual(result.error, "Unauthorized")


class CommissionEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.finance = User.objects.create_user(
            email='finance@maestro.test', password='password123', role=User.ROLE_FINANCE
        )
        self.lead = User.objects.create_user(email='lead@maestro.test', password='password123',
                                             role=User.ROLE_AGENT, star_level=4)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123',
                                              role=User.ROLE_AGENT, supervisor=self.lead)
        client = Client.objects.create(first_name='Pat', last_name='Kim', agent=self.agent,
                                       intake_status=Client.STATUS_APPROVED)
        CommissionService(self.admin).create_bonus_pool(client.id)

    def test_agent_sees_own_allocations(self):
        """
        Agents only list their own allocations.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('allocation-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['type'], BonusAllocation.TYPE_DIRECT)

    def test_summary_for_agent(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('allocation-summary'), {'agent_id': self.lead.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['agent_id'], self.agent.id)
        self.assertEqual(response.data['data']['total_earned'], Decimal('200.00'))

    def test_finance_reads_pools(self):
        self.client.force_authenticate(user=self.finance)
        response = self.client.get(reverse('bonus-pool-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results'][0]['allocations']), 2)

    def test_agent_cannot_read_pools(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('bonus-pool-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_mark_paid(self):
        allocation = BonusAllocation.objects.get(agent=self.lead)

        self.client.force_authenticate(user=self.finance)
        response = self.client.post(reverse('allocation-mark-paid', args=[allocation.id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('allocation-mark-paid', args=[allocation.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'allocation_id': allocation.id})

    def test_recalculate_unknown_agent(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('allocation-recalculate-star-level'), {'agent_id': 999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
