"""
Client Views
- Intake: create, prequalification, drafts, Gmail credentials
- Backoffice review: prequal and final decisions, phones, execution, closure
- Read-only feeds: events, extension requests, phone assignments
"""
from django.db.models import Q
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from authentication.permissions import IsAgentOrStaff, IsAgentRole, IsStaffRole
from authentication.serializers import ErrorResponseSerializer
from services.backoffice_service import BackofficeService
from services.betmgm_service import BetMGMService
from services.closure_service import ClosureService
from services.extension_service import ExtensionService
from services.intake_service import IntakeService
from services.overdue_service import OverdueService
from services.partner_service import PartnerService
from services.phone_service import PhoneService
from services.platform_service import PlatformService
from services.responses import service_response
from services.transaction_service import TransactionService
from todos.serializers import ToDoSerializer
from .models import ApplicationDraft, Client, EventLog, ExtensionRequest, PhoneAssignment
from .serializers import (
    ApplicationDraftSerializer,
    BetMGMRetrySerializer,
    BulkPartnerAssignSerializer,
    ClientCreateSerializer,
    ClientListSerializer,
    ClientPlatformSerializer,
    ClientSerializer,
    ClosureSerializer,
    DeadlineDaysSerializer,
    EventLogSerializer,
    ExtensionRequestCreateSerializer,
    ExtensionRequestSerializer,
    GmailCredentialsSerializer,
    OptionalReasonSerializer,
    PartnerAssignSerializer,
    PhoneAssignmentSerializer,
    PhoneAssignSerializer,
    PlatformScreenshotDeleteSerializer,
    PlatformScreenshotSerializer,
    PrequalificationSerializer,
    ReasonSerializer,
    ReviewNotesSerializer,
    StatusTransitionSerializer,
)


@swagger_auto_schema(tags=['Clients'])
class ClientViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Clients visible to the requesting user: agents see their own, staff see all.

    Every state change goes through the service layer; this viewset only
    validates payloads and shapes responses.
    """
    permission_classes = [IsAgentOrStaff]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    ordering_fields = ['created_at', 'updated_at', 'execution_deadline', 'last_name']
    ordering = ['-created_at']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Client.objects.none()

        queryset = IntakeService(self.request.user).visible_clients()
        params = self.request.query_params
        if params.get('intake_status'):
            queryset = queryset.filter(intake_status__in=params['intake_status'].split(','))
        if params.get('agent'):
            queryset = queryset.filter(agent_id=params['agent'])
        if params.get('partner'):
            queryset = queryset.filter(partner_id=params['partner'])
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('platforms')
        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return ClientListSerializer
        return ClientSerializer

    def _client_payload(self, client):
        return ClientSerializer(client, context=self.get_serializer_context()).data

    @swagger_auto_schema(request_body=ClientCreateSerializer, responses={201: ClientSerializer, 400: ErrorResponseSerializer}, tags=['Clients'])
    def create(self, request, *args, **kwargs):
        serializer = ClientCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = IntakeService(request.user).create_client(serializer.validated_data)
        if result.success:
            result.data = self._client_payload(result.data)
        return service_response(result, success_status=status.HTTP_201_CREATED)

    # ==================== INTAKE ====================

    @swagger_auto_schema(method='post', request_body=PrequalificationSerializer, responses={201: ClientSerializer, 400: ErrorResponseSerializer}, tags=['Clients'])
    @action(detail=False, methods=['post'], url_path='submit-prequalification')
    def submit_prequalification(self, request):
        serializer = PrequalificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = IntakeService(request.user).submit_prequalification(serializer.validated_data)
        if result.success:
            result.data = self._client_payload(result.data)
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(method='post', request_body=GmailCredentialsSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='gmail')
    def gmail(self, request, pk=None):
        serializer = GmailCredentialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client = self.get_object()
        return service_response(
            IntakeService(request.user).update_gmail_credentials(
                client.id,
                serializer.validated_data['gmail_account'],
                serializer.validated_data['gmail_password'],
            )
        )

    @swagger_auto_schema(method='get', responses={200: "Intake phase (1-4) or null"}, tags=['Clients'])
    @action(detail=True, methods=['get'])
    def phase(self, request, pk=None):
        client = self.get_object()
        phase = IntakeService(request.user).get_client_phase(client)
        return Response({'success': True, 'data': {'client_id': client.id, 'phase': phase}})

    @swagger_auto_schema(method='post', request_body=ExtensionRequestCreateSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='request-extension', permission_classes=[IsAgentRole])
    def request_extension(self, request, pk=None):
        serializer = ExtensionRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client = self.get_object()
        result = ExtensionService(request.user).request_deadline_extension(
            client.id,
            serializer.validated_data['reason'],
            requested_days=serializer.validated_data.get('requested_days'),
        )
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(method='post', request_body=PlatformScreenshotSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='platform-screenshots', url_name='platform-screenshots',
            permission_classes=[IsAgentRole], parser_classes=[MultiPartParser, FormParser])
    def upload_platform_screenshot(self, request, pk=None):
        client = self.get_object()
        platform_type = request.data.get('platform_type')
        uploaded = request.FILES.get('file')
        return service_response(
            PlatformService(request.user).upload_platform_screenshot(client.id, platform_type, uploaded)
        )

    @swagger_auto_schema(method='post', request_body=PlatformScreenshotDeleteSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='platform-screenshots/remove',
            url_name='platform-screenshots-remove', permission_classes=[IsAgentRole])
    def remove_platform_screenshot(self, request, pk=None):
        serializer = PlatformScreenshotDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client = self.get_object()
        return service_response(
            PlatformService(request.user).delete_platform_screenshot(
                client.id, serializer.validated_data['platform_type'], serializer.validated_data['path']
            )
        )

    @swagger_auto_schema(method='get', responses={200: ClientPlatformSerializer(many=True)}, tags=['Clients'])
    @action(detail=True, methods=['get'])
    def platforms(self, request, pk=None):
        client = self.get_object()
        return Response(ClientPlatformSerializer(client.platforms.all(), many=True).data)

    # ==================== BETMGM ====================

    @swagger_auto_schema(method='post', responses={200: "BetMGM verified", 400: ErrorResponseSerializer}, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='betmgm-verify', permission_classes=[IsStaffRole])
    def betmgm_verify(self, request, pk=None):
        return service_response(BetMGMService(request.user).verify_betmgm_manual(self.get_object().id))

    @swagger_auto_schema(method='get', responses={200: "BetMGM status"}, tags=['Clients'])
    @action(detail=True, methods=['get'], url_path='betmgm-status')
    def betmgm_status(self, request, pk=None):
        return service_response(BetMGMService(request.user).check_betmgm_status(self.get_object().id))

    @swagger_auto_schema(method='post', request_body=BetMGMRetrySerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='betmgm-retry', permission_classes=[IsAgentRole])
    def betmgm_retry(self, request, pk=None):
        serializer = BetMGMRetrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BetMGMService(request.user).retry_betmgm_submission(
                self.get_object().id,
                serializer.validated_data['agent_result'],
                serializer.validated_data['screenshots'],
            )
        )

    # ==================== BACKOFFICE REVIEW ====================

    @swagger_auto_schema(method='post', request_body=StatusTransitionSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], permission_classes=[IsStaffRole])
    def transition(self, request, pk=None):
        serializer = StatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).change_client_status(
                self.get_object().id,
                serializer.validated_data['status'],
                reason=serializer.validated_data.get('reason'),
            )
        )

    @swagger_auto_schema(method='post', responses={200: "Prequalification approved"}, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='approve-prequal', permission_classes=[IsStaffRole])
    def approve_prequal(self, request, pk=None):
        return service_response(BackofficeService(request.user).approve_prequal(self.get_object().id))

    @swagger_auto_schema(method='post', request_body=ReasonSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='reject-prequal', permission_classes=[IsStaffRole])
    def reject_prequal(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).reject_prequal(self.get_object().id, serializer.validated_data['reason'])
        )

    @swagger_auto_schema(method='post', request_body=OptionalReasonSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='reject-prequal-retry', permission_classes=[IsStaffRole])
    def reject_prequal_retry(self, request, pk=None):
        serializer = OptionalReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).reject_prequal_with_retry(
                self.get_object().id, serializer.validated_data.get('reason')
            )
        )

    @swagger_auto_schema(method='post', responses={200: "Client approved"}, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='approve-intake', permission_classes=[IsStaffRole])
    def approve_intake(self, request, pk=None):
        return service_response(BackofficeService(request.user).approve_client_intake(self.get_object().id))

    @swagger_auto_schema(method='post', request_body=ReasonSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='reject-intake', permission_classes=[IsStaffRole])
    def reject_intake(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).reject_client_intake(
                self.get_object().id, serializer.validated_data['reason']
            )
        )

    @swagger_auto_schema(method='post', request_body=PhoneAssignSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='assign-phone', permission_classes=[IsStaffRole])
    def assign_phone(self, request, pk=None):
        serializer = PhoneAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = PhoneService(request.user).assign_phone(
            self.get_object().id,
            data['phone_number'],
            device_id=data.get('device_id'),
            notes=data.get('notes'),
        )
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(method='post', request_body=DeadlineDaysSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='start-execution', permission_classes=[IsStaffRole])
    def start_execution(self, request, pk=None):
        serializer = DeadlineDaysSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).start_execution(
                self.get_object().id, deadline_days=serializer.validated_data.get('days')
            )
        )

    @swagger_auto_schema(method='post', request_body=ReasonSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='request-more-info', permission_classes=[IsStaffRole])
    def request_more_info(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).request_more_info(
                self.get_object().id, serializer.validated_data['reason']
            )
        )

    @swagger_auto_schema(method='post', request_body=DeadlineDaysSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='resume-execution', permission_classes=[IsStaffRole])
    def resume_execution(self, request, pk=None):
        serializer = DeadlineDaysSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            BackofficeService(request.user).resume_execution(
                self.get_object().id, days=serializer.validated_data.get('days', 3)
            )
        )

    @swagger_auto_schema(method='get', responses={200: "Client, screenshots, open to-dos and recent events"}, tags=['Clients'])
    @action(detail=True, methods=['get'], url_path='verification-details', permission_classes=[IsStaffRole])
    def verification_details(self, request, pk=None):
        result = BackofficeService(request.user).get_verification_task_details(self.get_object().id)
        if result.success:
            details = result.data
            result.data = {
                'client': self._client_payload(details['client']),
                'platforms': ClientPlatformSerializer(details['platforms'], many=True).data,
                'todos': ToDoSerializer(details['todos'], many=True).data,
                'events': EventLogSerializer(details['events'], many=True).data,
            }
        return service_response(result)

    @swagger_auto_schema(method='post', responses={200: "Overdue clients marked"}, tags=['Clients'])
    @action(detail=False, methods=['post'], url_path='mark-overdue', permission_classes=[IsStaffRole])
    def mark_overdue(self, request):
        return service_response(OverdueService(request.user).check_overdue_clients())

    # ==================== PARTNERS ====================

    @swagger_auto_schema(method='post', request_body=PartnerAssignSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], url_path='assign-partner', permission_classes=[IsStaffRole])
    def assign_partner(self, request, pk=None):
        serializer = PartnerAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            PartnerService(request.user).assign_client_to_partner(
                self.get_object().id, serializer.validated_data['partner_id']
            )
        )

    @swagger_auto_schema(method='post', request_body=BulkPartnerAssignSerializer, tags=['Clients'])
    @action(detail=False, methods=['post'], url_path='bulk-assign-partner', permission_classes=[IsStaffRole])
    def bulk_assign_partner(self, request):
        serializer = BulkPartnerAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            PartnerService(request.user).bulk_assign_partner(
                serializer.validated_data['client_ids'], serializer.validated_data['partner_id']
            )
        )

    # ==================== CLOSURE & BALANCES ====================

    @swagger_auto_schema(method='get', responses={200: "Per-platform balances"}, tags=['Clients'])
    @action(detail=True, methods=['get'], url_path='zero-balances', permission_classes=[IsStaffRole])
    def zero_balances(self, request, pk=None):
        return service_response(ClosureService(request.user).verify_zero_balances(self.get_object().id))

    @swagger_auto_schema(method='post', request_body=ClosureSerializer, tags=['Clients'])
    @action(detail=True, methods=['post'], permission_classes=[IsStaffRole])
    def close(self, request, pk=None):
        serializer = ClosureSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return service_response(
            ClosureService(request.user).close_client(
                self.get_object().id,
                data['reason'],
                proof_urls=data.get('proof_urls'),
                skip_balance_check=data.get('skip_balance_check', False),
            )
        )

    @swagger_auto_schema(method='get', responses={200: "Closure details"}, tags=['Clients'])
    @action(detail=True, methods=['get'])
    def closure(self, request, pk=None):
        return service_response(ClosureService(request.user).get_closure_details(self.get_object().id))

    @swagger_auto_schema(method='get', responses={200: "Ledger balance, total and per platform"}, tags=['Clients'])
    @action(detail=True, methods=['get'])
    def balance(self, request, pk=None):
        client = self.get_object()
        ledger = TransactionService(request.user)
        platform_type = request.query_params.get('platform_type')
        return Response({
            'success': True,
            'data': {
                'client_id': client.id,
                'balance': ledger.get_client_balance(client.id, platform_type=platform_type),
                'breakdown': ledger.get_client_balance_breakdown(client.id),
            }
        })

    @swagger_auto_schema(method='get', responses={200: EventLogSerializer(many=True)}, tags=['Clients'])
    @action(detail=True, methods=['get'])
    def events(self, request, pk=None):
        client = self.get_object()
        events = client.events.select_related('user')
        page = self.paginate_queryset(events)
        if page is not None:
            return self.get_paginated_response(EventLogSerializer(page, many=True).data)
        return Response(EventLogSerializer(events, many=True).data)


@swagger_auto_schema(tags=['Drafts'])
class ApplicationDraftViewSet(viewsets.ReadOnlyModelViewSet):
    """
    An agent's saved intake forms.
    """
    serializer_class = ApplicationDraftSerializer
    permission_classes = [IsAgentRole]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return ApplicationDraft.objects.none()
        return ApplicationDraft.objects.filter(agent=self.request.user)

    @swagger_auto_schema(request_body=ApplicationDraftSerializer, responses={201: ApplicationDraftSerializer}, tags=['Drafts'])
    def create(self, request, *args, **kwargs):
        serializer = ApplicationDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = IntakeService(request.user).save_draft(
            serializer.validated_data.get('data', {}), step=serializer.validated_data.get('step', 1)
        )
        if result.success:
            result.data = ApplicationDraftSerializer(result.data).data
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(request_body=ApplicationDraftSerializer, responses={200: ApplicationDraftSerializer}, tags=['Drafts'])
    def partial_update(self, request, *args, **kwargs):
        serializer = ApplicationDraftSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = IntakeService(request.user).save_draft(
            serializer.validated_data.get('data', {}),
            step=serializer.validated_data.get('step', 1),
            draft_id=kwargs['pk'],
        )
        if result.success:
            result.data = ApplicationDraftSerializer(result.data).data
        return service_response(result)

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        return service_response(IntakeService(request.user).delete_draft(kwargs['pk']))


@swagger_auto_schema(tags=['Extension Requests'])
class ExtensionRequestViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Deadline extension requests. Agents see their own; staff review all.
    """
    serializer_class = ExtensionRequestSerializer
    permission_classes = [IsAgentOrStaff]
    filterset_fields = ['status', 'client']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return ExtensionRequest.objects.none()
        queryset = ExtensionRequest.objects.select_related('client', 'requested_by', 'reviewed_by')
        if not self.request.user.is_staff_role:
            queryset = queryset.filter(requested_by=self.request.user)
        return queryset

    @swagger_auto_schema(method='post', request_body=ReviewNotesSerializer, tags=['Extension Requests'])
    @action(detail=True, methods=['post'], permission_classes=[IsStaffRole])
    def approve(self, request, pk=None):
        serializer = ReviewNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            ExtensionService(request.user).approve_extension_request(pk, serializer.validated_data.get('notes'))
        )

    @swagger_auto_schema(method='post', request_body=ReviewNotesSerializer, tags=['Extension Requests'])
    @action(detail=True, methods=['post'], permission_classes=[IsStaffRole])
    def reject(self, request, pk=None):
        serializer = ReviewNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            ExtensionService(request.user).reject_extension_request(pk, serializer.validated_data.get('notes'))
        )


@swagger_auto_schema(tags=['Phones'])
class PhoneAssignmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Company phones: issued with ``clients/{id}/assign-phone``, then signed out and returned here.
    """
    serializer_class = PhoneAssignmentSerializer
    permission_classes = [IsAgentOrStaff]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return PhoneAssignment.objects.none()
        queryset = PhoneAssignment.objects.select_related('client', 'agent')
        if not self.request.user.is_staff_role:
            queryset = queryset.filter(agent=self.request.user)
        if self.request.query_params.get('outstanding') == 'true':
            queryset = queryset.filter(returned_at__isnull=True)
        return queryset

    @swagger_auto_schema(method='post', responses={200: "Phone signed out"}, tags=['Phones'])
    @action(detail=True, methods=['post'], url_path='sign-out', permission_classes=[IsStaffRole])
    def sign_out(self, request, pk=None):
        return service_response(PhoneService(request.user).sign_out_phone(pk))

    @swagger_auto_schema(method='post', responses={200: "Phone returned"}, tags=['Phones'])
    @action(detail=True, methods=['post'], url_path='return', permission_classes=[IsStaffRole])
    def return_phone(self, request, pk=None):
        return service_response(PhoneService(request.user).return_phone(pk))


@swagger_auto_schema(tags=['Events'])
class EventLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The audit trail, newest first. ``?search=`` matches description and client name.
    """
    serializer_class = EventLogSerializer
    permission_classes = [IsStaffRole]
    filterset_fields = ['event_type', 'client', 'user']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return EventLog.objects.none()
        queryset = EventLog.objects.select_related('client', 'user')
        term = self.request.query_params.get('search')
        if term:
            queryset = queryset.filter(
                Q(description__icontains=term)
                | Q(client__first_name__icontains=term)
                | Q(client__last_name__icontains=term)
            )
        return queryset
