import shutil
import tempfile
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import BytesIO, StringIO

from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from faker import Faker
from PIL import Image

from backoffice.storage import url_to_path
from clients.models import ApplicationDraft, Client, ClientPlatform, EventLog, ExtensionRequest, PhoneAssignment
from clients.platforms import ALL_PLATFORMS, BETMGM, DRAFTKINGS, platform_code_from_name
from clients.tasks import mark_overdue_clients_task
from clients.utils import add_business_days
from commission.models import BonusPool
from funds.models import Transaction
from notifications.models import Notification
from services.backoffice_service import BackofficeService
from services.betmgm_service import BetMGMService
from services.closure_service import ClosureService
from services.extension_service import ExtensionService
from services.intake_service import IntakeService
from services.overdue_service import OverdueService
from services.phone_service import PhoneService
from services.platform_service import PlatformService
from services.status_transition_service import StatusTransitionService, can_transition
from services.transaction_service import TransactionService
from todos.models import ToDo

User = get_user_model()
fake = Faker()


def png_upload(name='screen.png'):
    buffer = BytesIO()
    Image.new('RGB', (8, 8), color='white').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class ClientTestMixin:
    """Users and a client factory shared by the service tests below."""

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@maestro.test', password='password123', role=User.ROLE_ADMIN)
        self.backoffice = User.objects.create_user(
            email='backoffice@maestro.test', password='password123', role=User.ROLE_BACKOFFICE
        )
        self.agent = User.objects.create_user(
            email='agent@maestro.test', password='password123', role=User.ROLE_AGENT,
            first_name='Alex', last_name='Agent',
        )
        self.other_agent = User.objects.create_user(
            email='other@maestro.test', password='password123', role=User.ROLE_AGENT
        )

    def make_client(self, status=Client.STATUS_PENDING, agent=None, **extra):
        client = Client.objects.create(
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone=fake.msisdn(),
            agent=agent or self.agent,
            intake_status=status,
            **extra
        )
        ClientPlatform.objects.bulk_create([
            ClientPlatform(client=client, platform_type=platform_type) for platform_type in ALL_PLATFORMS
        ])
        return client

    def set_betmgm(self, client, status, **extra):
        ClientPlatform.objects.filter(client=client, platform_type=BETMGM).update(status=status, **extra)


class BusinessDaysTests(TestCase):

    def test_skips_weekend(self):
        friday = datetime(2026, 10, 16, 14, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(add_business_days(friday, 3), datetime(2026, 10, 21, 14, 0, tzinfo=dt_timezone.utc))

    def test_midweek(self):
        monday = datetime(2026, 10, 19, 9, 30, tzinfo=dt_timezone.utc)
        self.assertEqual(add_business_days(monday, 3), datetime(2026, 10, 22, 9, 30, tzinfo=dt_timezone.utc))

    def test_saturday_start(self):
        saturday = datetime(2026, 10, 17, 10, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(add_business_days(saturday, 1), datetime(2026, 10, 19, 10, 0, tzinfo=dt_timezone.utc))

    def test_zero_days(self):
        start = datetime(2026, 10, 17, 10, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(add_business_days(start, 0), start)


class PlatformCatalogueTests(TestCase):

    def test_display_name_lookup(self):
        self.assertEqual(platform_code_from_name('Bally Bet'), 'BALLYBET')
        self.assertIsNone(platform_code_from_name('BALLYBET'))

    def test_catalogue_size(self):
        self.assertEqual(len(ALL_PLATFORMS), 11)


class IntakeServiceTests(ClientTestMixin, TestCase):

    def prequal_data(self, **overrides):
        data = {
            'first_name': 'Jamie',
            'last_name': 'Rivera',
            'gmail_account': 'jamie.rivera@gmail.com',
            'gmail_password': 'secret-pass',
            'agent_confirms_id': True,
            'id_expiry': timezone.localdate() + timedelta(days=365),
            'date_of_birth': date(1990, 5, 1),
            'betmgm_result': 'success',
            'betmgm_login_screenshot': '/media/uploads/login.png',
        }
        data.update(overrides)
        return data

    def test_create_client(self):
        result = IntakeService(self.agent).create_client({
            'first_name': 'Sam', 'last_name': 'Lee', 'phone': '555-0100',
        })

        self.assertTrue(result.success)
        client = result.data
        self.assertEqual(client.agent, self.agent)
        self.assertEqual(client.intake_status, Client.STATUS_PENDING)
        self.assertEqual(client.platforms.count(), 11)
        self.assertTrue(client.events.filter(event_type=EventLog.APPLICATION_SUBMITTED).exists())

    def test_create_client_requires_phone(self):
        result = IntakeService(self.agent).create_client({'first_name': 'Sam', 'last_name': 'Lee'})

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Required field missing: phone")
        self.assertFalse(Client.objects.exists())

    def test_submit_prequalification(self):
        result = IntakeService(self.agent).submit_prequalification(self.prequal_data())

        self.assertTrue(result.success)
        client = result.data
        self.assertTrue(client.prequal_completed)
        self.assertEqual(client.intake_status, Client.STATUS_PENDING)
        betmgm = client.platforms.get(platform_type=BETMGM)
        self.assertEqual(betmgm.status, ClientPlatform.STATUS_PENDING_REVIEW)
        self.assertEqual(betmgm.screenshots, ['/media/uploads/login.png'])
        self.assertEqual(client.platforms.exclude(platform_type=BETMGM).filter(
            status=ClientPlatform.STATUS_NOT_STARTED).count(), 10)

    def test_failed_betmgm_starts_rejected(self):
        result = IntakeService(self.agent).submit_prequalification(self.prequal_data(betmgm_result='failed'))

        self.assertTrue(result.success)
        betmgm = result.data.platforms.get(platform_type=BETMGM)
        self.assertEqual(betmgm.status, ClientPlatform.STATUS_REJECTED)

    def test_prequalification_collects_all_errors(self):
        result = IntakeService(self.agent).submit_prequalification({})

        self.assertFalse(result.success)
        self.assertEqual(result.errors, [
            "First name is required",
            "Last name is required",
            "A valid Gmail account is required",
            "Gmail password is required",
            "You must confirm the client's ID",
        ])

    def test_expired_id_rejected(self):
        result = IntakeService(self.agent).submit_prequalification(
            self.prequal_data(id_expiry=timezone.localdate() - timedelta(days=1))
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Cannot submit — ID is expired")

    def test_prequalification_deletes_draft(self):
        draft = IntakeService(self.agent).save_draft({'first_name': 'Jamie'}, step=2).data

        result = IntakeService(self.agent).submit_prequalification(self.prequal_data(draft_id=draft.id))

        self.assertTrue(result.success)
        self.assertFalse(ApplicationDraft.objects.filter(pk=draft.id).exists())

    def test_update_draft_of_other_agent(self):
        draft = IntakeService(self.agent).save_draft({'first_name': 'Jamie'}).data

        result = IntakeService(self.other_agent).save_draft({'first_name': 'X'}, draft_id=draft.id)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Draft not found")

    def test_delete_missing_draft(self):
        result = IntakeService(self.agent).delete_draft(999)
        self.assertEqual(result.error, "Draft not found")

    def test_update_gmail_only_own_client(self):
        client = self.make_client()

        result = IntakeService(self.other_agent).update_gmail_credentials(client.id, 'new@gmail.com', 'pw')
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Failed to update Gmail credentials")

        result = IntakeService(self.agent).update_gmail_credentials(client.id, 'new@gmail.com', 'pw')
        self.assertTrue(result.success)
        client.refresh_from_db()
        self.assertEqual(client.gmail_account, 'new@gmail.com')

    def test_client_phase(self):
        service = IntakeService(self.agent)
        client = self.make_client(prequal_completed=True)
        self.assertEqual(service.get_client_phase(client), 1)

        self.set_betmgm(client, ClientPlatform.STATUS_VERIFIED)
        self.assertEqual(service.get_client_phase(client), 2)

        for status, phase in [
            (Client.STATUS_PHONE_ISSUED, 3),
            (Client.STATUS_IN_EXECUTION, 3),
            (Client.STATUS_READY_FOR_APPROVAL, 4),
            (Client.STATUS_APPROVED, None),
        ]:
            client.intake_status = status
            self.assertEqual(service.get_client_phase(client), phase)


class StatusTransitionTests(ClientTestMixin, TestCase):

    def test_transition_table(self):
        self.assertTrue(can_transition(Client.STATUS_PENDING, Client.STATUS_PHONE_ISSUED))
        self.assertTrue(can_transition(Client.STATUS_READY_FOR_APPROVAL, Client.STATUS_APPROVED))
        self.assertFalse(can_transition(Client.STATUS_PENDING, Client.STATUS_APPROVED))
        self.assertFalse(can_transition(Client.STATUS_PARTNERSHIP_ENDED, Client.STATUS_APPROVED))

    def test_invalid_transition(self):
        client = self.make_client()

        result = StatusTransitionService(self.admin).transition_status(client.id, Client.STATUS_APPROVED)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Cannot transition from PENDING to APPROVED")
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_PENDING)

    def test_missing_client(self):
        result = StatusTransitionService(self.admin).transition_status(999, Client.STATUS_INACTIVE)
        self.assertEqual(result.error, "Client not found")

    def test_phone_issued_creates_verification_todos(self):
        client = self.make_client()

        result = StatusTransitionService(self.admin).transition_status(client.id, Client.STATUS_PHONE_ISSUED)

        self.assertTrue(result.success)
        self.assertEqual(result.data['todos_created'], 2)
        self.assertEqual(ToDo.objects.filter(client=client, type=ToDo.TYPE_VERIFICATION).count(), 2)
        event = client.events.get(event_type=EventLog.STATUS_CHANGE)
        self.assertEqual(event.old_value, Client.STATUS_PENDING)
        self.assertEqual(event.new_value, Client.STATUS_PHONE_ISSUED)

    def test_execution_sets_deadline_and_todos(self):
        client = self.make_client(Client.STATUS_PHONE_ISSUED)
        before = timezone.now()

        result = StatusTransitionService(self.admin).transition_status(client.id, Client.STATUS_IN_EXECUTION)

        self.assertTrue(result.success)
        self.assertEqual(result.data['todos_created'], 12)
        client.refresh_from_db()
        self.assertEqual(client.execution_deadline, result.data['execution_deadline'])
        self.assertGreaterEqual(client.execution_deadline, add_business_days(before, 3))
        uploads = ToDo.objects.filter(client=client, type=ToDo.TYPE_UPLOAD_SCREENSHOT)
        self.assertEqual(uploads.count(), 11)
        self.assertEqual(set(uploads.values_list('platform_type', flat=True)), set(ALL_PLATFORMS))
        self.assertTrue(all(todo.due_date == client.execution_deadline for todo in uploads))

    def test_custom_deadline_days(self):
        client = self.make_client(Client.STATUS_PHONE_ISSUED)
        before = timezone.now()

        StatusTransitionService(self.admin).transition_status(client.id, Client.STATUS_IN_EXECUTION, deadline_days=5)

        client.refresh_from_db()
        self.assertGreaterEqual(client.execution_deadline, add_business_days(before, 5))

    def test_reentering_execution_fills_gaps_only(self):
        client = self.make_client(Client.STATUS_PHONE_ISSUED)
        service = StatusTransitionService(self.admin)
        service.transition_status(client.id, Client.STATUS_IN_EXECUTION)

        result = service.transition_status(client.id, Client.STATUS_NEEDS_MORE_INFO, reason="Need bank statement")
        self.assertEqual(result.data['todos_created'], 1)
        self.assertTrue(ToDo.objects.filter(client=client, type=ToDo.TYPE_PROVIDE_INFO,
                                            status=ToDo.STATUS_PENDING).exists())

        result = service.transition_status(client.id, Client.STATUS_IN_EXECUTION)
        self.assertTrue(result.success)
        self.assertEqual(result.data['todos_created'], 0)
        self.assertEqual(result.data['todos_cancelled'], 1)
        self.assertEqual(ToDo.objects.filter(client=client, type=ToDo.TYPE_UPLOAD_SCREENSHOT).count(), 11)
        self.assertEqual(ToDo.objects.get(client=client, type=ToDo.TYPE_PROVIDE_INFO).status, ToDo.STATUS_CANCELLED)

    def test_rejection_cancels_todos_and_notifies_agent(self):
        client = self.make_client(Client.STATUS_PREQUAL_REVIEW)
        ToDo.objects.create(client=client, assigned_to=self.agent, title="Open", type=ToDo.TYPE_VERIFICATION)

        result = StatusTransitionService(self.admin).transition_status(
            client.id, Client.STATUS_REJECTED, reason="Duplicate identity"
        )

        self.assertTrue(result.success)
        self.assertEqual(result.data['todos_cancelled'], 1)
        notification = Notification.objects.get(recipient=self.agent)
        self.assertEqual(notification.notification_type, EventLog.REJECTION)
        self.assertIn("Duplicate identity", notification.message)

    def test_approval_creates_pool_and_phone_todos(self):
        client = self.make_client(Client.STATUS_READY_FOR_APPROVAL)

        result = StatusTransitionService(self.admin).transition_status(client.id, Client.STATUS_APPROVED)

        self.assertTrue(result.success)
        self.assertTrue(BonusPool.objects.filter(client=client).exists())
        types = set(ToDo.objects.filter(client=client).values_list('type', flat=True))
        self.assertEqual(types, {ToDo.TYPE_PHONE_SIGNOUT, ToDo.TYPE_PHONE_RETURN})
        self.assertTrue(Notification.objects.filter(recipient=self.agent,
                                                    notification_type=EventLog.APPROVAL).exists())


class BackofficeServiceTests(ClientTestMixin, TestCase):

    def test_agents_cannot_review(self):
        client = self.make_client(Client.STATUS_PREQUAL_REVIEW)

        result = BackofficeService(self.agent).approve_prequal(client.id)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Unauthorized")

    def test_approve_prequal_verifies_betmgm(self):
        client = self.make_client(Client.STATUS_PREQUAL_REVIEW)
        self.set_betmgm(client, ClientPlatform.STATUS_PENDING_REVIEW)

        result = BackofficeService(self.backoffice).approve_prequal(client.id)

        self.assertTrue(result.success)
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_PREQUAL_APPROVED)
        betmgm = client.platforms.get(platform_type=BETMGM)
        self.assertEqual(betmgm.status, ClientPlatform.STATUS_VERIFIED)
        self.assertEqual(betmgm.reviewed_by, self.backoffice)

    def test_approve_pending_prequal_keeps_client_pending(self):
        client = self.make_client(Client.STATUS_PENDING, prequal_completed=True)
        self.set_betmgm(client, ClientPlatform.STATUS_PENDING_REVIEW)

        result = BackofficeService(self.backoffice).approve_prequal(client.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data['new_status'], Client.STATUS_PENDING)
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_PENDING)
        self.assertEqual(client.platforms.get(platform_type=BETMGM).status, ClientPlatform.STATUS_VERIFIED)
        self.assertEqual(IntakeService(self.agent).get_client_phase(client), 2)
        self.assertTrue(client.events.filter(event_type=EventLog.PLATFORM_STATUS_CHANGE).exists())

    def test_approve_pending_prequal_requires_betmgm_review(self):
        client = self.make_client(Client.STATUS_PENDING)

        result = BackofficeService(self.backoffice).approve_prequal(client.id)

        self.assertEqual(result.error, "BetMGM platform not in PENDING_REVIEW state")

    def test_submit_approve_then_issue_phone(self):
        client = IntakeService(self.agent).submit_prequalification({
            'first_name': 'Jamie',
            'last_name': 'Rivera',
            'gmail_account': 'jamie.rivera@gmail.com',
            'gmail_password': 'secret-pass',
            'agent_confirms_id': True,
            'betmgm_result': 'success',
            'betmgm_login_screenshot': '/media/uploads/login.png',
        }).data
        self.assertEqual(IntakeService(self.agent).get_client_phase(client), 1)

        self.assertTrue(BackofficeService(self.backoffice).approve_prequal(client.id).success)
        client.refresh_from_db()
        self.assertEqual(IntakeService(self.agent).get_client_phase(client), 2)

        result = PhoneService(self.backoffice).assign_phone(client.id, '555-0199')

        self.assertTrue(result.success)
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_PHONE_ISSUED)
        self.assertEqual(IntakeService(self.agent).get_client_phase(client), 3)

    def test_prequal_approved_client_can_take_a_phone(self):
        client = self.make_client(Client.STATUS_PREQUAL_APPROVED)

        self.assertEqual(IntakeService(self.agent).get_client_phase(client), 2)
        result = PhoneService(self.backoffice).assign_phone(client.id, '555-0199')

        self.assertTrue(result.success)
        self.assertEqual(result.data['old_status'], Client.STATUS_PREQUAL_APPROVED)

    def test_reject_with_retry(self):
        client = self.make_client()
        self.set_betmgm(client, ClientPlatform.STATUS_PENDING_REVIEW)
        before = timezone.now()

        result = BackofficeService(self.backoffice).reject_prequal_with_retry(client.id, "Blurry screenshot")

        self.assertTrue(result.success)
        betmgm = client.platforms.get(platform_type=BETMGM)
        self.assertEqual(betmgm.status, ClientPlatform.STATUS_RETRY_PENDING)
        self.assertEqual(betmgm.retry_count, 1)
        self.assertGreaterEqual(betmgm.retry_after, before + timedelta(hours=24))
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_PENDING)
        self.assertTrue(Notification.objects.filter(recipient=self.agent).exists())

    def test_reject_with_retry_requires_pending_review(self):
        client = self.make_client()

        result = BackofficeService(self.backoffice).reject_prequal_with_retry(client.id)

        self.assertEqual(result.error, "BetMGM platform not in PENDING_REVIEW state")

    def test_approve_intake_requires_ready(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)

        result = BackofficeService(self.admin).approve_client_intake(client.id)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Client is not ready for approval")

    def test_approve_intake(self):
        client = self.make_client(Client.STATUS_READY_FOR_APPROVAL)

        result = BackofficeService(self.admin).approve_client_intake(client.id)

        self.assertTrue(result.success)
        client.refresh_from_db()
        self.assertEqual(client.intake_status, Client.STATUS_APPROVED)

    def test_start_execution(self):
        client = self.make_client(Client.STATUS_PHONE_ISSUED)

        result = BackofficeService(self.backoffice).start_execution(client.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data['new_status'], Client.STATUS_IN_EXECUTION)


class BetMGMServiceTests(ClientTestMixin, TestCase):

    def test_agent_cannot_verify(self):
        client = self.make_client()
        result = BetMGMService(self.agent).verify_betmgm_manual(client.id)
        self.assertEqual(result.error, "Only backoffice or admin can verify BetMGM accounts")

    def test_manual_verification(self):
        client = self.make_client()

        result = BetMGMService(self.backoffice).verify_betmgm_manual(client.id)
        self.assertTrue(result.success)
        self.assertEqual(result.meta['message'], "BetMGM account verified successfully")

        result = BetMGMService(self.backoffice).verify_betmgm_manual(client.id)
        self.assertTrue(result.success)
        self.assertEqual(result.meta['message'], "BetMGM is already verified")

        status = BetMGMService(self.agent).check_betmgm_status(client.id)
        self.assertEqual(status.data, {'status': ClientPlatform.STATUS_VERIFIED, 'verified': True})

    def test_retry_before_cooldown(self):
        client = self.make_client()
        self.set_betmgm(client, ClientPlatform.STATUS_RETRY_PENDING, retry_after=timezone.now() + timedelta(hours=1))

        result = BetMGMService(self.agent).retry_betmgm_submission(client.id, 'success', ['/media/a.png'])

        self.assertEqual(result.error, "Retry cooldown has not expired yet")

    def test_retry_after_cooldown(self):
        client = self.make_client()
        self.set_betmgm(client, ClientPlatform.STATUS_RETRY_PENDING,
                        retry_after=timezone.now() - timedelta(minutes=1), retry_count=1)

        result = BetMGMService(self.agent).retry_betmgm_submission(client.id, 'success', ['/media/a.png'])

        self.assertTrue(result.success)
        self.assertEqual(result.data, {'status': ClientPlatform.STATUS_PENDING_REVIEW, 'retry_count': 2})
        self.assertEqual(Notification.objects.filter(recipient__in=[self.admin, self.backoffice]).count(), 2)

    def test_retry_requires_screenshot(self):
        client = self.make_client()
        self.set_betmgm(client, ClientPlatform.STATUS_RETRY_PENDING)

        result = BetMGMService(self.agent).retry_betmgm_submission(client.id, 'success', [])

        self.assertEqual(result.error, "At least one screenshot is required")

    def test_retry_by_other_agent(self):
        client = self.make_client()
        result = BetMGMService(self.other_agent).retry_betmgm_submission(client.id, 'success', ['/media/a.png'])
        self.assertEqual(result.error, "You are not assigned to this client")

    def test_retry_when_not_pending(self):
        client = self.make_client()
        result = BetMGMService(self.agent).retry_betmgm_submission(client.id, 'success', ['/media/a.png'])
        self.assertEqual(result.error, "BetMGM is not in retry-pending state")


class ExtensionServiceTests(ClientTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.deadline = datetime(2026, 10, 19, 12, 0, tzinfo=dt_timezone.utc)
        self.client_obj = self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=self.deadline)

    def request(self, agent=None, reason="Client is travelling this week"):
        return ExtensionService(agent or self.agent).request_deadline_extension(self.client_obj.id, reason)

    def test_reason_too_short(self):
        result = self.request(reason="busy")
        self.assertEqual(result.error, "Please provide a reason (at least 10 characters)")

    def test_other_agents_client(self):
        result = self.request(agent=self.other_agent)
        self.assertEqual(result.error, "Client not found")

    def test_requires_execution(self):
        Client.objects.filter(pk=self.client_obj.id).update(intake_status=Client.STATUS_PHONE_ISSUED)
        result = self.request()
        self.assertEqual(result.error, "Extensions can only be requested for clients in execution")

    def test_maximum_extensions(self):
        Client.objects.filter(pk=self.client_obj.id).update(deadline_extensions=3)
        result = self.request()
        self.assertEqual(result.error, "Maximum number of extensions reached")

    def test_one_pending_request(self):
        self.assertTrue(self.request().success)
        result = self.request()
        self.assertEqual(result.error, "An extension request is already pending for this client")

    def test_request_notifies_staff(self):
        result = self.request()

        self.assertTrue(result.success)
        request = ExtensionRequest.objects.get(pk=result.data['request_id'])
        self.assertEqual(request.requested_days, 3)
        self.assertEqual(request.current_deadline, self.deadline)
        self.assertEqual(Notification.objects.filter(notification_type=EventLog.DEADLINE_EXTENDED).count(), 2)

    def test_requested_days_are_kept(self):
        service = ExtensionService(self.agent)

        result = service.request_deadline_extension(self.client_obj.id, "Client is travelling this week",
                                                    requested_days=5)
        self.assertEqual(ExtensionRequest.objects.get(pk=result.data['request_id']).requested_days, 5)

        ExtensionRequest.objects.all().delete()
        result = service.request_deadline_extension(self.client_obj.id, "Client is travelling this week",
                                                    requested_days=0)
        self.assertEqual(ExtensionRequest.objects.get(pk=result.data['request_id']).requested_days, 0)

    def test_approve_moves_deadline_and_todos(self):
        early = ToDo.objects.create(client=self.client_obj, assigned_to=self.agent, title="Upload",
                                    type=ToDo.TYPE_UPLOAD_SCREENSHOT, due_date=self.deadline)
        late = ToDo.objects.create(client=self.client_obj, assigned_to=self.agent, title="Later",
                                   type=ToDo.TYPE_VERIFICATION, due_date=self.deadline + timedelta(days=10))
        request_id = self.request().data['request_id']

        result = ExtensionService(self.backoffice).approve_extension_request(request_id, "OK")

        self.assertTrue(result.success)
        new_deadline = datetime(2026, 10, 22, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(result.data['new_deadline'], new_deadline)
        self.assertEqual(result.data['todos_updated'], 1)
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.execution_deadline, new_deadline)
        self.assertEqual(self.client_obj.deadline_extensions, 1)
        early.refresh_from_db()
        late.refresh_from_db()
        self.assertEqual(early.due_date, self.deadline + timedelta(days=3))
        self.assertEqual(late.due_date, self.deadline + timedelta(days=10))
        self.assertTrue(Notification.objects.filter(recipient=self.agent, title="Extension approved").exists())

        result = ExtensionService(self.backoffice).approve_extension_request(request_id)
        self.assertEqual(result.error, "Extension request is not pending")

    def test_agent_cannot_approve(self):
        request_id = self.request().data['request_id']
        result = ExtensionService(self.agent).approve_extension_request(request_id)
        self.assertEqual(result.error, "Unauthorized — admin or backoffice role required")

    def test_reject_requires_notes(self):
        request_id = self.request().data['request_id']

        result = ExtensionService(self.backoffice).reject_extension_request(request_id, "  ")
        self.assertEqual(result.error, "Rejection notes are required")

        result = ExtensionService(self.backoffice).reject_extension_request(request_id, "Deadline is firm")
        self.assertTrue(result.success)
        self.assertEqual(ExtensionRequest.objects.get(pk=request_id).status, ExtensionRequest.STATUS_REJECTED)
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.execution_deadline, self.deadline)


class OverdueServiceTests(ClientTestMixin, TestCase):

    def test_nothing_overdue(self):
        self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() + timedelta(days=1))

        result = OverdueService().check_overdue_clients()

        self.assertTrue(result.success)
        self.assertEqual(result.data, {'marked': 0, 'client_ids': []})

    def test_marks_overdue_clients(self):
        overdue = self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() - timedelta(hours=1))
        on_time = self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() + timedelta(days=1))

        result = OverdueService().check_overdue_clients()

        self.assertEqual(result.data, {'marked': 1, 'client_ids': [overdue.id]})
        overdue.refresh_from_db()
        on_time.refresh_from_db()
        self.assertEqual(overdue.intake_status, Client.STATUS_EXECUTION_DELAYED)
        self.assertEqual(on_time.intake_status, Client.STATUS_IN_EXECUTION)
        missed = overdue.events.get(event_type=EventLog.DEADLINE_MISSED)
        self.assertEqual(missed.user, self.admin)

    def test_requires_admin_actor(self):
        User.objects.filter(role=User.ROLE_ADMIN).update(is_active=False)
        self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() - timedelta(hours=1))

        result = OverdueService().check_overdue_clients()

        self.assertEqual(result.error, "No active admin user found for system operations")

    def test_management_command(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() - timedelta(hours=1))
        out = StringIO()

        call_command('mark_overdue_clients', stdout=out)

        self.assertIn(f"Marked 1 client(s) overdue: {client.id}", out.getvalue())

    def test_celery_task(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION, execution_deadline=timezone.now() - timedelta(hours=1))

        outcome = mark_overdue_clients_task.apply().get()

        self.assertEqual(outcome, {'status': 'success', 'marked': 1, 'client_ids': [client.id]})


class PhoneServiceTests(ClientTestMixin, TestCase):

    def test_assign_phone_issues_client(self):
        client = self.make_client()

        result = PhoneService(self.backoffice).assign_phone(client.id, '555-0199', device_id='PX-7')

        self.assertTrue(result.success)
        self.assertEqual(result.data['new_status'], Client.STATUS_PHONE_ISSUED)
        assignment = PhoneAssignment.objects.get(client=client)
        self.assertEqual(assignment.agent, self.agent)
        self.assertIsNotNone(assignment.issued_at)

        result = PhoneService(self.backoffice).assign_phone(client.id, '555-0200')
        self.assertEqual(result.error, "Client must be in PENDING status to assign a phone")

    def test_agent_cannot_assign(self):
        client = self.make_client()
        result = PhoneService(self.agent).assign_phone(client.id, '555-0199')
        self.assertEqual(result.error, "Unauthorized")

    def test_sign_out_then_return(self):
        client = self.make_client()
        assignment_id = PhoneService(self.backoffice).assign_phone(client.id, '555-0199').data['assignment_id']
        service = PhoneService(self.backoffice)

        self.assertEqual(service.return_phone(assignment_id).error, "Phone must be signed out before returning")
        self.assertTrue(service.sign_out_phone(assignment_id).success)
        self.assertEqual(service.sign_out_phone(assignment_id).error, "Phone is already signed out")
        self.assertTrue(service.return_phone(assignment_id).success)
        self.assertEqual(service.return_phone(assignment_id).error, "Phone has already been returned")


class ClosureServiceTests(ClientTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client_obj = self.make_client(Client.STATUS_APPROVED)
        self.ledger = TransactionService(self.admin)

    def test_only_approved_clients(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)
        result = ClosureService(self.admin).close_client(client.id, "Done")
        self.assertEqual(
            result.error, "Cannot close client in IN_EXECUTION status. Only APPROVED clients can be closed."
        )

    def test_non_zero_balance_blocks_closure(self):
        self.ledger.record_transaction(Transaction.DEPOSIT, '100.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)

        result = ClosureService(self.backoffice).close_client(self.client_obj.id, "Done")

        self.assertFalse(result.success)
        self.assertIn("DRAFTKINGS: $100.00", result.error)

    def test_zero_balance_check_uses_net_balance(self):
        self.ledger.record_transaction(Transaction.DEPOSIT, '100.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)
        self.ledger.record_transaction(Transaction.WITHDRAWAL, '95.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)
        self.ledger.record_transaction(Transaction.FEE, '5.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)

        result = ClosureService(self.backoffice).verify_zero_balances(self.client_obj.id)

        self.assertEqual(result.data, {'all_zero': True, 'breakdown': {DRAFTKINGS: {'balance': Decimal('0.00')}}})

    def test_close_after_balances_cleared(self):
        self.ledger.record_transaction(Transaction.DEPOSIT, '100.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)
        self.ledger.record_transaction(Transaction.WITHDRAWAL, '100.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)
        ToDo.objects.create(client=self.client_obj, assigned_to=self.agent, title="Return phone",
                            type=ToDo.TYPE_PHONE_RETURN)

        result = ClosureService(self.backoffice).close_client(self.client_obj.id, "Partnership complete",
                                                             proof_urls=['/media/proof.png'])

        self.assertTrue(result.success)
        self.assertEqual(result.data['todos_cancelled'], 1)
        details = ClosureService(self.backoffice).get_closure_details(self.client_obj.id).data
        self.assertEqual(details['intake_status'], Client.STATUS_PARTNERSHIP_ENDED)
        self.assertEqual(details['closure_proof'], ['/media/proof.png'])
        self.assertEqual(details['closed_by']['id'], self.backoffice.id)

    def test_skip_balance_check_is_admin_only(self):
        self.ledger.record_transaction(Transaction.DEPOSIT, '50.00', client=self.client_obj,
                                       platform_type=DRAFTKINGS)

        result = ClosureService(self.backoffice).close_client(self.client_obj.id, "Done", skip_balance_check=True)
        self.assertEqual(result.error, "Only admins can skip balance verification")

        result = ClosureService(self.admin).close_client(self.client_obj.id, "Done", skip_balance_check=True)
        self.assertTrue(result.success)

    def test_agent_cannot_close(self):
        result = ClosureService(self.agent).close_client(self.client_obj.id, "Done")
        self.assertEqual(result.error, "Insufficient permissions")


@override_settings(MEDIA_ROOT=tempfile.mkdtemp())
class PlatformServiceTests(ClientTestMixin, TestCase):

    @classmethod
    def tearDownClass(cls):
        from django.conf import settings
        shutil.rmtree(settings.MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def test_upload_and_delete_screenshot(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)
        service = PlatformService(self.agent)

        result = service.upload_platform_screenshot(client.id, DRAFTKINGS, png_upload())

        self.assertTrue(result.success)
        self.assertEqual(result.data['status'], ClientPlatform.STATUS_PENDING_REVIEW)
        path = result.data['path']
        self.assertTrue(path.startswith(f"/media/uploads/clients/{client.id}/platforms/DRAFTKINGS/"))

        result = service.delete_platform_screenshot(client.id, DRAFTKINGS, path)
        self.assertTrue(result.success)
        self.assertEqual(result.data, {'status': ClientPlatform.STATUS_PENDING_UPLOAD, 'screenshots': []})

    def test_delete_only_touches_recorded_screenshots(self):
        other_client = self.make_client(Client.STATUS_IN_EXECUTION, agent=self.other_agent)
        other_path = PlatformService(self.other_agent).upload_platform_screenshot(
            other_client.id, DRAFTKINGS, png_upload()
        ).data['path']
        own_client = self.make_client(Client.STATUS_IN_EXECUTION)

        result = PlatformService(self.agent).delete_platform_screenshot(own_client.id, DRAFTKINGS, other_path)

        self.assertEqual(result.error, "Screenshot not found")
        self.assertTrue(default_storage.exists(url_to_path(other_path)))
        own_platform = own_client.platforms.get(platform_type=DRAFTKINGS)
        self.assertEqual(own_platform.status, ClientPlatform.STATUS_NOT_STARTED)
        self.assertFalse(own_client.events.filter(event_type=EventLog.PLATFORM_UPLOAD).exists())

    def test_rejects_non_image(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)
        upload = SimpleUploadedFile('notes.txt', b'not an image', content_type='text/plain')

        result = PlatformService(self.agent).upload_platform_screenshot(client.id, DRAFTKINGS, upload)

        self.assertEqual(result.error, 'Invalid file type. Please upload JPG, PNG, or WebP.')

    def test_unknown_platform(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)
        result = PlatformService(self.agent).upload_platform_screenshot(client.id, 'MYSPACE', png_upload())
        self.assertEqual(result.error, "Platform not found")

    def test_other_agents_client(self):
        client = self.make_client(Client.STATUS_IN_EXECUTION)
        result = PlatformService(self.other_agent).upload_platform_screenshot(client.id, DRAFTKINGS, png_upload())
        self.assertEqual(result.error, "Client not found")
