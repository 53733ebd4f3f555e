import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from PIL import Image
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import User
from backoffice import reports
from backoffice.exports import BOM, PdfReport, generate_csv
from clients.models import Client, ClientPlatform, ExtensionRequest
from clients.platforms import BETMGM
from commission.models import BonusAllocation, BonusPool
from funds.models import FundMovement
from partners.models import Partner, ProfitShareRule
from services.commission_service import CommissionService
from services.fund_movement_service import FundMovementService
from services.profit_share_service import ProfitShareService
from todos.models import ToDo

MEDIA_ROOT = tempfile.mkdtemp()


def movement(recorded_by, from_client, amount, to_client=None, **extra):
    values = dict(
        type='external' if to_client is None else 'internal',
        flow_type=FundMovement.FLOW_EXTERNAL if to_client is None else FundMovement.FLOW_DIFFERENT_CLIENTS,
        from_client=from_client,
        to_client=to_client,
        from_platform='Bank',
        to_platform='DraftKings',
        amount=Decimal(amount),
        recorded_by=recorded_by,
    )
    values.update(extra)
    return FundMovement.objects.create(**values)


class GenerateCsvTests(TestCase):

    def test_quotes_only_when_needed(self):
        content = generate_csv(['Name', 'Notes'], [['Jo Park', 'late, again'], ['Sam "S" Lee', None]])
        self.assertEqual(content, 'Name,Notes\nJo Park,"late, again"\n"Sam ""S"" Lee",')


class PdfReportTests(TestCase):

    def test_text_with_markup_characters(self):
        report = PdfReport('Clients <all>', generated_by='Ann <Lee')
        report.add_heading('R&D')
        report.add_lines(['Total <b>: 5'])
        report.add_table(['Name'], [['Jo <Park>']])

        self.assertTrue(report.render().startswith(b'%PDF'))


class AgentKpiTests(TestCase):

    def test_rates(self):
        agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        for intake_status in (Client.STATUS_APPROVED, Client.STATUS_APPROVED, Client.STATUS_REJECTED,
                              Client.STATUS_IN_EXECUTION):
            Client.objects.create(first_name='C', last_name=intake_status, agent=agent, intake_status=intake_status)
        delayed = Client.objects.create(first_name='D', last_name='Late', agent=agent,
                                        intake_status=Client.STATUS_EXECUTION_DELAYED)
        ExtensionRequest.objects.create(client=delayed, requested_by=agent, reason='Bank hold',
                                        current_deadline=timezone.now())
        ToDo.objects.create(client=delayed, assigned_to=agent, title='Verify', type=ToDo.TYPE_VERIFICATION)

        kpis = reports.agent_kpis(agent)

        self.assertEqual(kpis['total_clients'], 5)
        self.assertEqual(kpis['success_rate'], 67)
        self.assertEqual(kpis['delay_rate'], 50)
        self.assertEqual(kpis['extension_rate'], 20)
        self.assertEqual(kpis['pending_todos'], 1)
        self.assertIsNone(kpis['avg_days_to_convert'])

    def test_agent_without_clients(self):
        agent = User.objects.create_user(email='new@maestro.test', password='password123', role=User.ROLE_AGENT)
        kpis = reports.agent_kpis(agent)
        self.assertEqual((kpis['success_rate'], kpis['delay_rate'], kpis['extension_rate']), (0, 0, 0))


class ReportTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.alice = Client.objects.create(first_name='Alice', last_name='Moss')
        self.bob = Client.objects.create(first_name='Bob', last_name='Hart')

    def test_settlement_report(self):
        first = FundMovementService(self.admin).record_fund_movement({
            'flow_type': FundMovement.FLOW_DIFFERENT_CLIENTS,
            'from_client_id': self.alice.id,
            'to_client_id': self.bob.id,
            'from_platform': 'Bank',
            'to_platform': 'FanDuel',
            'amount': '500',
        })
        FundMovementService(self.admin).record_fund_movement({
            'from_client_id': self.alice.id,
            'from_platform': 'Bank',
            'to_platform': 'DraftKings',
            'amount': '100',
        })
        FundMovementService(self.admin).confirm_settlement(first.data['fund_movement_id'])

        report = reports.settlement_report()

        self.assertEqual(len(report['details']), 2)
        alice, bob = report['clients']
        self.assertEqual(alice['client_name'], 'Alice Moss')
        self.assertEqual((alice['total_in'], alice['total_out'], alice['net_balance']),
                         (Decimal('100'), Decimal('600'), Decimal('-500')))
        self.assertEqual((alice['pending'], alice['confirmed'], alice['rejected']), (1, 1, 0))
        self.assertEqual(bob['net_balance'], Decimal('500'))

    def test_agent_commission_report(self):
        director = User.objects.create_user(email='director@maestro.test', password='password123',
                                            role=User.ROLE_AGENT, star_level=4, tier='4-star')
        lead = User.objects.create_user(email='lead@maestro.test', password='password123',
                                        role=User.ROLE_AGENT, star_level=2, tier='2-star', supervisor=director)
        rookie = User.objects.create_user(email='rookie@maestro.test', password='password123',
                                          role=User.ROLE_AGENT, supervisor=lead)
        client = Client.objects.create(first_name='Pat', last_name='Kim', agent=rookie,
                                       intake_status=Client.STATUS_APPROVED)
        CommissionService(self.admin).create_bonus_pool(client.id)

        report = reports.agent_commission_report()

        self.assertEqual(report['totals'], {
            'total_earned': Decimal('400.00'),
            'total_direct': Decimal('200.00'),
            'total_override': Decimal('200.00'),
            'total_pending': Decimal('400.00'),
            'count': 3,
        })
        self.assertEqual(report['by_agent'][0]['agent_id'], rookie.id)
        self.assertEqual(report['by_agent'][0]['override_total'], Decimal('0.00'))

        only_lead = reports.agent_commission_report(agent_id=lead.id)
        self.assertEqual(only_lead['by_agent'][0]['star_slice_total'], Decimal('100.00'))
        self.assertEqual(only_lead['by_agent'][0]['override_total'], Decimal('100.00'))

    def test_client_ltv_report(self):
        agent = User.objects.create_user(email='solo@maestro.test', password='password123',
                                         role=User.ROLE_AGENT, star_level=1, tier='1-star')
        self.alice.agent = agent
        self.alice.intake_status = Client.STATUS_APPROVED
        self.alice.save()
        CommissionService(self.admin).create_bonus_pool(self.alice.id)
        movement(self.admin, self.bob, '1000', to_client=self.alice)
        movement(self.admin, self.alice, '200')

        report = reports.client_ltv_report()

        self.assertEqual(report['totals']['client_count'], 1)
        row = report['clients'][0]
        self.assertEqual(row['total_deposited'], Decimal('1000'))
        self.assertEqual(row['total_withdrawn'], Decimal('200'))
        self.assertEqual(row['commission_cost'], Decimal('250.00'))
        self.assertEqual(row['ltv'], Decimal('550.00'))
        self.assertEqual(row['monthly_ltv'], Decimal('0.00'))

    def test_partner_profit_report(self):
        partner = Partner.objects.create(name='Northside Referrals')
        ProfitShareRule.objects.create(partner=partner, name='Split', partner_percent=Decimal('30'),
                                       company_percent=Decimal('70'), fee_fixed=Decimal('10'),
                                       effective_from=timezone.now() - timedelta(days=1))
        service = ProfitShareService(self.admin)
        paid = service.calculate_profit_share(partner.id, Decimal('110'), 'deposits')
        service.calculate_profit_share(partner.id, Decimal('210'), 'deposits')
        service.mark_profit_share_paid(paid.id)

        report = reports.partner_profit_report()

        self.assertEqual(report['totals']['count'], 2)
        self.assertEqual(report['totals']['fees'], Decimal('20.00'))
        self.assertEqual(report['totals']['partner_share'], Decimal('90.00'))
        row = report['by_partner'][0]
        self.assertEqual((row['paid_amount'], row['pending_amount']), (Decimal('30.00'), Decimal('60.00')))


class AgentDashboardTests(TestCase):

    def setUp(self):
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123',
                                              role=User.ROLE_AGENT, first_name='Ana', last_name='Diaz')
        self.closer = User.objects.create_user(email='closer@maestro.test', password='password123',
                                               role=User.ROLE_AGENT)

    def allocation(self, amount, paid_at=None, last_name='Pool'):
        client = Client.objects.create(first_name='Pat', last_name=last_name, agent=self.closer,
                                       intake_status=Client.STATUS_APPROVED)
        pool = BonusPool.objects.create(client=client, closer=self.closer)
        return BonusAllocation.objects.create(
            bonus_pool=pool, agent=self.agent, type=BonusAllocation.TYPE_STAR_SLICE, amount=Decimal(amount),
            status=BonusAllocation.STATUS_PAID if paid_at else BonusAllocation.STATUS_PENDING, paid_at=paid_at,
        )

    def test_agent_earnings(self):
        now = timezone.now()
        self.allocation('150', paid_at=now, last_name='Paid')
        self.allocation('40', last_name='Open')

        earnings = reports.agent_earnings(self.agent)

        self.assertEqual(earnings['total_earnings'], Decimal('150'))
        self.assertEqual(earnings['pending_payout'], Decimal('40'))
        self.assertEqual(earnings['this_month'], Decimal('190'))
        self.assertEqual([row['status'] for row in earnings['recent_transactions']], ['Pending', 'Paid'])
        self.assertEqual(earnings['recent_transactions'][1]['client'], 'Pat Paid')

    def test_agent_dashboard_stats(self):
        now = timezone.now()
        last_month = timezone.localtime().replace(day=1) - timedelta(days=5)
        self.allocation('150', paid_at=now, last_name='Now')
        self.allocation('100', paid_at=last_month, last_name='Before')

        Client.objects.create(first_name='A', last_name='Done', agent=self.agent,
                              intake_status=Client.STATUS_APPROVED, status_changed_at=now)
        Client.objects.create(first_name='B', last_name='Old', agent=self.agent,
                              intake_status=Client.STATUS_APPROVED, status_changed_at=last_month)
        working = Client.objects.create(first_name='C', last_name='Busy', agent=self.agent,
                                        intake_status=Client.STATUS_IN_EXECUTION)
        ToDo.objects.create(client=working, assigned_to=self.agent, title='Deposit', type=ToDo.TYPE_EXECUTION)
        ToDo.objects.create(client=working, assigned_to=self.agent, title='Late', type=ToDo.TYPE_EXECUTION,
                            status=ToDo.STATUS_OVERDUE)
        ToDo.objects.create(client=working, assigned_to=self.agent, title='Done', type=ToDo.TYPE_EXECUTION,
                            status=ToDo.STATUS_COMPLETED)

        stats = reports.agent_dashboard_stats(self.agent)

        self.assertEqual(stats['total_clients'], 3)
        self.assertEqual(stats['active_clients'], 1)
        self.assertEqual(stats['completed_this_month'], 1)
        self.assertEqual(stats['pending_tasks'], 2)
        self.assertEqual(stats['earnings'], Decimal('250'))
        self.assertEqual(stats['earnings_this_month'], Decimal('150'))
        self.assertEqual(stats['earnings_change'], 50.0)

    def test_no_earnings_last_month(self):
        self.allocation('80', paid_at=timezone.now())
        self.assertEqual(reports.agent_dashboard_stats(self.agent)['earnings_change'], 0.0)


class OverviewTests(TestCase):

    def setUp(self):
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123',
                                              role=User.ROLE_AGENT, first_name='Ana', last_name='Diaz')

    def test_counts(self):
        ready = Client.objects.create(first_name='R', last_name='Ready', agent=self.agent,
                                      intake_status=Client.STATUS_READY_FOR_APPROVAL)
        Client.objects.create(first_name='A', last_name='Approved', intake_status=Client.STATUS_APPROVED,
                              status_changed_at=timezone.now())
        delayed = Client.objects.create(first_name='D', last_name='Late', agent=self.agent,
                                        intake_status=Client.STATUS_EXECUTION_DELAYED)
        ClientPlatform.objects.create(client=ready, platform_type=BETMGM, status=ClientPlatform.STATUS_PENDING_REVIEW)
        ToDo.objects.create(client=delayed, assigned_to=self.agent, title='Call', type=ToDo.TYPE_EXECUTION, priority=0)
        ToDo.objects.create(client=delayed, assigned_to=self.agent, title='Late', type=ToDo.TYPE_EXECUTION,
                            priority=3, status=ToDo.STATUS_OVERDUE)
        ExtensionRequest.objects.create(client=delayed, requested_by=self.agent, reason='Bank hold',
                                        current_deadline=timezone.now())
        movement(self.agent, ready, '50')

        stats = reports.overview_stats()
        self.assertEqual(stats, {
            'pending_reviews': 2,
            'approved_today': 1,
            'urgent_actions': 1,
            'active_clients': 1,
            'pending_extensions': 1,
            'delayed_clients': 1,
        })
        self.assertEqual(reports.pending_action_counts(), {
            'pending_intake': 1,
            'pending_verification': 1,
            'pending_settlement': 1,
            'overdue_tasks': 1,
        })

    def test_delayed_clients(self):
        now = timezone.now()
        recent = Client.objects.create(first_name='New', last_name='Delay', agent=self.agent,
                                       intake_status=Client.STATUS_EXECUTION_DELAYED, status_changed_at=now)
        oldest = Client.objects.create(first_name='Old', last_name='Delay',
                                       intake_status=Client.STATUS_EXECUTION_DELAYED,
                                       status_changed_at=now - timedelta(days=3))
        Client.objects.create(first_name='On', last_name='Time', intake_status=Client.STATUS_IN_EXECUTION)
        for status_value in (ToDo.STATUS_PENDING, ToDo.STATUS_COMPLETED, ToDo.STATUS_CANCELLED):
            ToDo.objects.create(client=recent, assigned_to=self.agent, title=status_value,
                                type=ToDo.TYPE_EXECUTION, status=status_value)

        rows = reports.delayed_clients()

        self.assertEqual([row['id'] for row in rows], [oldest.id, recent.id])
        self.assertEqual(rows[0]['agent_name'], 'Unassigned')
        self.assertEqual((rows[0]['pending_todos_count'], rows[0]['completed_todos_count']), (0, 0))
        self.assertEqual(rows[1]['agent_name'], 'Ana Diaz')
        self.assertEqual((rows[1]['pending_todos_count'], rows[1]['completed_todos_count']), (1, 1))


class ExportEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN,
                                              first_name='Ada', last_name='Admin')
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        self.finance = User.objects.create_user(
            email='finance@maestro.test', password='password123', role=User.ROLE_FINANCE
        )
        self.own = Client.objects.create(first_name='Jo', last_name='Park', agent=self.agent, email='jo@example.com')
        Client.objects.create(first_name='Sam', last_name='Lee', agent=self.other_agent)

    def csv_lines(self, response):
        content = response.content.decode('utf-8')
        self.assertTrue(content.startswith(BOM))
        return content[len(BOM):].split('\n')

    def test_agent_exports_own_clients(self):
        """
        The client export is scoped to the agent and carries a BOM.
        """
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('export-clients'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment; filename="clients-', response['Content-Disposition'])
        lines = self.csv_lines(response)
        self.assertEqual(lines[0], ','.join(reports.CLIENT_EXPORT_HEADERS))
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[1].startswith('Jo Park,jo@example.com'))

    def test_staff_exports_all_clients(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('export-clients'))
        self.assertEqual(len(self.csv_lines(response)), 3)

    def test_agents_export_requires_staff(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('export-agents'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_agents_export(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('export-agents'))
        self.assertEqual(len(self.csv_lines(response)), 3)

    def test_pdf_export(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('export-agents'), {'output': 'pdf'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_pdf_export_for_user_name_with_markup(self):
        self.admin.first_name = 'Ann <Lee'
        self.admin.save()
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('export-clients'), {'output': 'pdf'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_settlements_export_has_summary(self):
        movement(self.admin, self.own, '50')
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('export-settlements'))

        content = response.content.decode('utf-8')
        self.assertIn('\n\nCLIENT SUMMARY\n', content)
        self.assertIn('Jo Park,0.00,50.00,-50.00,1,0,0', content)

    def test_settlements_pdf(self):
        movement(self.admin, self.own, '50')
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('export-settlements'), {'output': 'pdf'})
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_reports_require_staff(self):
        self.client.force_authenticate(user=self.finance)
        for name in ('report-agent-commission', 'report-client-ltv', 'report-partner-profit'):
            self.assertEqual(self.client.get(reverse(name)).status_code, status.HTTP_403_FORBIDDEN, name)

    def test_report_csv(self):
        self.client.force_authenticate(user=self.admin)
        for name, headers in (
            ('report-agent-commission', reports.AGENT_COMMISSION_HEADERS),
            ('report-client-ltv', reports.CLIENT_LTV_HEADERS),
            ('report-partner-profit', reports.PARTNER_PROFIT_HEADERS),
        ):
            response = self.client.get(reverse(name), {'date_from': '2026-01-01'})
            self.assertEqual(response.status_code, status.HTTP_200_OK, name)
            self.assertEqual(self.csv_lines(response)[0], ','.join(headers))

    def test_report_rejects_bad_dates(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('report-client-ltv'), {'date_from': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SearchEndpointTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT,
                                              first_name='Parker', last_name='Young')
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )
        self.own = Client.objects.create(first_name='Jo', last_name='Park', agent=self.agent)
        Client.objects.create(first_name='Kim', last_name='Parks', agent=self.other_agent)

    def test_short_query(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('search'), {'q': 'p'})
        self.assertEqual(response.data['data'], [])

    def test_agent_search_is_scoped(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('search'), {'q': 'park'})

        results = response.data['data']
        self.assertEqual([(row['type'], row['id']) for row in results], [('client', self.own.id)])
        self.assertEqual(results[0]['link'], f"/agent/clients/{self.own.id}")

    def test_staff_search_includes_agents(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('search'), {'q': 'park'})

        types = [row['type'] for row in response.data['data']]
        self.assertEqual(types.count('client'), 2)
        self.assertEqual(types.count('agent'), 1)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class UploadEndpointTests(APITestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123', role=User.ROLE_AGENT)
        self.client.force_authenticate(user=self.agent)

    def image(self, name='id card.png'):
        buffer = BytesIO()
        Image.new('RGB', (4, 4)).save(buffer, format='PNG')
        return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')

    def test_upload(self):
        data = {'entity': 'clients', 'entityId': '12', 'type': 'id', 'file': self.image()}

        response = self.client.post(reverse('upload'), data, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        url = response.data['data']['url']
        self.assertTrue(url.startswith('/media/uploads/clients/12/id/'))
        self.assertTrue(url.endswith('-id_card.png'))

    def test_upload_needs_owner(self):
        data = {'entity': 'clients', 'type': 'id', 'file': self.image()}
        response = self.client.post(reverse('upload'), data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_path_segments(self):
        data = {'entity': '../etc', 'entityId': '12', 'type': 'id', 'file': self.image()}
        response = self.client.post(reverse('upload'), data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_non_images(self):
        upload = SimpleUploadedFile('notes.png', b'not an image', content_type='image/png')
        data = {'entity': 'clients', 'entityId': '12', 'type': 'id', 'file': upload}

        response = self.client.post(reverse('upload'), data, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid file type. Please upload JPG, PNG, or WebP.')


class OverviewEndpointTests(APITestCase):
    def setUp(self):
        self.backoffice = User.objects.create_user(email='bo@maestro.test', password='password123',
                                                   role=User.ROLE_BACKOFFICE)
        self.agent = User.objects.create_user(email='agent@maestro.test', password='password123',
                                              role=User.ROLE_AGENT)
        Client.objects.create(first_name='D', last_name='Late', agent=self.agent,
                              intake_status=Client.STATUS_EXECUTION_DELAYED)

    def test_overview(self):
        self.client.force_authenticate(user=self.backoffice)
        response = self.client.get(reverse('overview'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['stats']['delayed_clients'], 1)
        self.assertIn('pending_settlement', response.data['data']['pending_actions'])

    def test_delayed_clients(self):
        self.client.force_authenticate(user=self.backoffice)
        response = self.client.get(reverse('delayed-clients'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['name'], 'D Late')

    def test_overview_requires_staff(self):
        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.get(reverse('overview')).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(reverse('delayed-clients')).status_code, status.HTTP_403_FORBIDDEN)
