from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from clients.models import Client
from clients.platforms import BANK, DRAFTKINGS, FANDUEL
from funds.models import FundMovement, Transaction
from partners.models import Partner, ProfitShareDetail, ProfitShareRule
from services.fund_movement_service import FundMovementService
from services.transaction_service import TransactionService


class FundMovementServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.alice = Client.objects.create(first_name='Alice', last_name='Moss')
        self.bob = Client.objects.create(first_name='Bob', last_name='Hart')

    def record(self, **overrides):
        data = {
            'from_client_id': self.alice.id,
            'from_platform': 'Bank',
            'to_platform': 'DraftKings',
            'amount': Decimal('500'),
        }
        data.update(overrides)
        return FundMovementService(self.admin).record_fund_movement(data)

    def ledger(self, result):
        return list(
            Transaction.objects.filter(id__in=result.data['transaction_ids'])
            .order_by('id')
            .values_list('type', 'client_id', 'platform_type', 'amount')
        )

    def test_same_client_transfer(self):
        result = self.record(fee=Decimal('5'), method='zelle')

        self.assertTrue(result.success)
        self.assertEqual(self.ledger(result), [
            (Transaction.INTERNAL_TRANSFER, self.alice.id, DRAFTKINGS, Decimal('500.00')),
            (Transaction.FEE, self.alice.id, BANK, Decimal('5.00')),
        ])
        movement = FundMovement.objects.get(pk=result.data['fund_movement_id'])
        self.assertEqual(movement.to_client, self.alice)
        self.assertEqual(movement.settlement_status, FundMovement.SETTLEMENT_PENDING_REVIEW)

    def test_transfer_between_clients(self):
        result = self.record(flow_type=FundMovement.FLOW_DIFFERENT_CLIENTS, to_client_id=self.bob.id,
                             to_platform='FanDuel')

        self.assertEqual(self.ledger(result), [
            (Transaction.WITHDRAWAL, self.alice.id, BANK, Decimal('500.00')),
            (Transaction.DEPOSIT, self.bob.id, FANDUEL, Decimal('500.00')),
        ])
        service = TransactionService(self.admin)
        self.assertEqual(service.get_client_balance(self.alice.id), Decimal('-500.00'))
        self.assertEqual(service.get_client_balance(self.bob.id, FANDUEL), Decimal('500.00'))

    def test_external_flows(self):
        deposit = self.record(flow_type=FundMovement.FLOW_EXTERNAL, to_client_id=self.bob.id)
        withdrawal = self.record(flow_type=FundMovement.FLOW_EXTERNAL, amount=Decimal('75'))

        self.assertEqual(self.ledger(deposit), [(Transaction.DEPOSIT, self.bob.id, DRAFTKINGS, Decimal('500.00'))])
        self.assertEqual(self.ledger(withdrawal), [(Transaction.WITHDRAWAL, self.alice.id, BANK, Decimal('75.00'))])
        self.assertEqual(FundMovement.objects.get(pk=withdrawal.data['fund_movement_id']).type, 'external')

    def test_validation(self):
        cases = [
            ({'amount': Decimal('0')}, "Amount must be greater than 0"),
            ({'amount': 'abc'}, "Amount must be greater than 0"),
            ({'from_platform': 'Nowhere'}, "Invalid source platform"),
            ({'to_platform': 'DRAFTKINGS'}, "Invalid destination platform"),
            ({'method': 'cash'}, "Invalid transfer method"),
            ({'from_client_id': None}, "Source client is required"),
            ({'flow_type': FundMovement.FLOW_DIFFERENT_CLIENTS}, "Destination client is required for this flow type"),
        ]
        for overrides, error in cases:
            self.assertEqual(self.record(**overrides).error, error, overrides)
        self.assertFalse(FundMovement.objects.exists())

    def test_agents_cannot_record(self):
        result = FundMovementService(self.agent).record_fund_movement({'amount': 10})
        self.assertEqual(result.error, "Unauthorized — admin or backoffice role required")

    def test_partner_clients_get_profit_share(self):
        partner = Partner.objects.create(name='Northside Referrals')
        ProfitShareRule.objects.create(
            partner=partner, name='Deposits', partner_percent=Decimal('20'), company_percent=Decimal('80'),
            applies_to='deposits', effective_from=timezone.now() - timedelta(days=1),
        )
        self.bob.partner = partner
        self.bob.save()

        self.record(flow_type=FundMovement.FLOW_DIFFERENT_CLIENTS, to_client_id=self.bob.id)

        detail = ProfitShareDetail.objects.get()
        self.assertEqual(detail.client, self.bob)
        self.assertEqual(detail.transaction_type, 'deposits')
        self.assertEqual(detail.partner_amount, Decimal('100.00'))

    def test_confirm_and_reject(self):
        first = self.record().data['fund_movement_id']
        second = self.record().data['fund_movement_id']
        service = FundMovementService(self.admin)

        result = service.confirm_settlement(first, notes='Matches bank statement')
        self.assertEqual(result.data, {'fund_movement_id': first, 'settlement_status': 'CONFIRMED'})
        self.assertEqual(service.reject_settlement(first, 'Wrong amount').error,
                         "Cannot reject — current status is CONFIRMED")

        self.assertEqual(service.reject_settlement(second, ' ').error, "Rejection reason is required")
        result = service.reject_settlement(second, 'Duplicate entry')
        self.assertEqual(result.data['settlement_status'], 'REJECTED')

        movement = FundMovement.objects.get(pk=second)
        self.assertEqual(movement.reviewed_by, self.admin)
        self.assertEqual(movement.review_notes, 'Duplicate entry')

    def test_bulk_confirm_skips_reviewed(self):
        ids = [self.record().data['fund_movement_id'] for _ in range(3)]
        service = FundMovementService(self.admin)
        service.confirm_settlement(ids[0])

        self.assertEqual(service.bulk_confirm_settlements([]).error, "No settlements selected")
        self.assertEqual(service.bulk_confirm_settlements(ids + [999]).data, {'confirmed': 2})


class TransactionServiceTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.client_obj = Client.objects.create(first_name='Alice', last_name='Moss')
        self.service = TransactionService(self.admin)

    def test_balance_breakdown(self):
        self.service.record_transaction(Transaction.DEPOSIT, 300, client=self.client_obj, platform_type=DRAFTKINGS)
        self.service.record_transaction(Transaction.WITHDRAWAL, 120, client=self.client_obj, platform_type=DRAFTKINGS)
        self.service.record_transaction(Transaction.FEE, 5, client=self.client_obj)
        self.service.record_transaction(Transaction.ADJUSTMENT, 50, client=self.client_obj, platform_type=BANK)

        self.assertEqual(self.service.get_client_balance(self.client_obj.id), Decimal('175.00'))
        self.assertEqual(self.service.get_client_balance_breakdown(self.client_obj.id), {
            DRAFTKINGS: {'deposits': Decimal('300.00'), 'withdrawals': Decimal('120.00'),
                         'fees': Decimal('0.00'), 'balance': Decimal('180.00')},
            'UNASSIGNED': {'deposits': Decimal('0.00'), 'withdrawals': Decimal('0.00'),
                           'fees': Decimal('5.00'), 'balance': Decimal('-5.00')},
            BANK: {'deposits': Decimal('0.00'), 'withdrawals': Decimal('0.00'),
                   'fees': Decimal('0.00'), 'balance': Decimal('0.00')},
        })

    def test_reverse(self):
        row = self.service.record_transaction(Transaction.DEPOSIT, 300, client=self.client_obj)

        result = self.service.reverse_transaction(row.id, 'Entered twice')

        self.assertTrue(result.success)
        row.refresh_from_db()
        self.assertEqual(row.status, Transaction.STATUS_REVERSED)
        adjustment = Transaction.objects.get(pk=result.data['adjustment_id'])
        self.assertEqual(adjustment.type, Transaction.ADJUSTMENT)
        self.assertEqual(adjustment.metadata['reversed_transaction_id'], row.id)
        self.assertEqual(self.service.get_client_balance(self.client_obj.id), Decimal('0.00'))

        self.assertEqual(self.service.reverse_transaction(row.id, 'Again').error, "Transaction already reversed")
        self.assertEqual(self.service.reverse_transaction(999, 'Missing').error, "Transaction not found")

    def test_history_filters(self):
        self.service.record_transaction(Transaction.DEPOSIT, 10, client=self.client_obj, reference='wire-881')
        self.service.record_transaction(Transaction.FEE, 1, client=self.client_obj)

        self.assertEqual(len(self.service.get_transaction_history({'type': Transaction.FEE})), 1)
        self.assertEqual(len(self.service.get_transaction_history({'search': 'wire'})), 1)
        self.assertEqual(len(self.service.get_transaction_history({}, limit=1)), 1)


class FundEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.finance = User.objects.create_user(
            email='finance@maestro.test', password='password123', role=User.ROLE_FINANCE
        )
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.client_obj = Client.objects.create(first_name='Alice', last_name='Moss')
        self.payload = {
            'from_client_id': self.client_obj.id,
            'from_platform': 'Bank',
            'to_platform': 'DraftKings',
            'amount': '250.00',
            'fee': '2.50',
        }

    def test_record_movement(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('fund-movement-list'), self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['data']['transaction_ids']), 2)

    def test_invalid_platform(self):
        self.client.force_authenticate(user=self.admin)
        self.payload['to_platform'] = 'Nowhere'

        response = self.client.post(reverse('fund-movement-list'), self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Invalid destination platform")

    def test_finance_reads_but_cannot_record(self):
        self.client.force_authenticate(user=self.admin)
        self.client.post(reverse('fund-movement-list'), self.payload, format='json')

        self.client.force_authenticate(user=self.finance)
        response = self.client.get(reverse('fund-movement-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.post(reverse('fund-movement-list'), self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_agents_denied(self):
        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.get(reverse('transaction-list')).status_code, status.HTTP_403_FORBIDDEN)

    def test_confirm_settlement(self):
        self.client.force_authenticate(user=self.admin)
        movement_id = self.client.post(
            reverse('fund-movement-list'), self.payload, format='json'
        ).data['data']['fund_movement_id']

        response = self.client.post(reverse('fund-movement-confirm', args=[movement_id]), {}, format='json')
        self.assertEqual(response.data['data']['settlement_status'], FundMovement.SETTLEMENT_CONFIRMED)

        response = self.client.post(reverse('fund-movement-reject', args=[movement_id]),
                                    {'notes': 'Too late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_confirm(self):
        self.client.force_authenticate(user=self.admin)
        ids = [
            self.client.post(reverse('fund-movement-list'), self.payload, format='json').data['data']['fund_movement_id']
            for _ in range(2)
        ]

        response = self.client.post(reverse('fund-movement-bulk-confirm'), {'movement_ids': ids}, format='json')

        self.assertEqual(response.data['data'], {'confirmed': 2})

    def test_transaction_list_and_reverse(self):
        """
        The ledger list is unpaginated; reversing appends an adjustment row.
        """
        self.client.force_authenticate(user=self.admin)
        self.client.post(reverse('fund-movement-list'), self.payload, format='json')
        fee = Transaction.objects.get(type=Transaction.FEE)

        response = self.client.get(reverse('transaction-list'), {'client_id': self.client_obj.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 2)

        response = self.client.post(reverse('transaction-reverse', args=[fee.id]), {'reason': 'Waived'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(reverse('transaction-list'), {'type': 'ADJUSTMENT'})
        self.assertEqual(response.data['data'][0]['signed_amount'], '0.00')

    def test_finance_cannot_reverse(self):
        row = TransactionService(self.admin).record_transaction(Transaction.DEPOSIT, 10, client=self.client_obj)
        self.client.force_authenticate(user=self.finance)

        response = self.client.post(reverse('transaction-reverse', args=[row.id]), {'reason': 'x'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
