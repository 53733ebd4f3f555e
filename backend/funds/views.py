from drf_yasg.utils import swagger_auto_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import IsFinanceOrStaff, IsStaffRole
from services.fund_movement_service import FundMovementService
from services.responses import service_response
from services.transaction_service import TransactionService
from .models import FundMovement, Transaction
from .serializers import (
    FundMovementCreateSerializer,
    FundMovementSerializer,
    MovementIdsSerializer,
    ReverseTransactionSerializer,
    SettlementReviewSerializer,
    TransactionHistoryQuerySerializer,
    TransactionSerializer,
)


@swagger_auto_schema(tags=['Funds'])
class FundMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Fund movements and their settlement review. Finance may read; staff record and review.
    """
    serializer_class = FundMovementSerializer
    filterset_fields = ['flow_type', 'settlement_status', 'from_client', 'to_client', 'method']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsFinanceOrStaff()]
        return [IsStaffRole()]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return FundMovement.objects.none()
        return FundMovement.objects.select_related('from_client', 'to_client', 'recorded_by', 'reviewed_by')

    @swagger_auto_schema(request_body=FundMovementCreateSerializer, responses={201: "Movement and ledger rows recorded"}, tags=['Funds'])
    def create(self, request, *args, **kwargs):
        serializer = FundMovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = FundMovementService(request.user).record_fund_movement(serializer.validated_data)
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(method='post', request_body=SettlementReviewSerializer, tags=['Funds'])
    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        serializer = SettlementReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            FundMovementService(request.user).confirm_settlement(pk, serializer.validated_data.get('notes'))
        )

    @swagger_auto_schema(method='post', request_body=SettlementReviewSerializer, tags=['Funds'])
    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = SettlementReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            FundMovementService(request.user).reject_settlement(pk, serializer.validated_data.get('notes'))
        )

    @swagger_auto_schema(method='post', request_body=MovementIdsSerializer, tags=['Funds'])
    @action(detail=False, methods=['post'], url_path='bulk-confirm')
    def bulk_confirm(self, request):
        serializer = MovementIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            FundMovementService(request.user).bulk_confirm_settlements(serializer.validated_data['movement_ids'])
        )


@swagger_auto_schema(tags=['Transactions'])
class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The append-only ledger.

    ``list`` returns the most recent rows matching the query filters
    (client_id, type, status, platform_type, date_from, date_to, search, limit).
    """
    serializer_class = TransactionSerializer

    def get_permissions(self):
        if self.action == 'reverse':
            return [IsStaffRole()]
        return [IsFinanceOrStaff()]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Transaction.objects.none()
        return Transaction.objects.select_related('client', 'recorded_by')

    @swagger_auto_schema(query_serializer=TransactionHistoryQuerySerializer, responses={200: TransactionSerializer(many=True)}, tags=['Transactions'])
    def list(self, request, *args, **kwargs):
        query = TransactionHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = dict(query.validated_data)
        limit = filters.pop('limit')
        rows = TransactionService(request.user).get_transaction_history(filters, limit=limit)
        return Response({'success': True, 'data': TransactionSerializer(rows, many=True).data})

    @swagger_auto_schema(method='post', request_body=ReverseTransactionSerializer, tags=['Transactions'])
    @action(detail=True, methods=['post'])
    def reverse(self, request, pk=None):
        serializer = ReverseTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            TransactionService(request.user).reverse_transaction(pk, serializer.validated_data['reason'])
        )
