from django.db.models import Count
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action

from authentication.permissions import IsFinanceOrStaff, IsStaffRole
from authentication.serializers import ErrorResponseSerializer
from services.partner_service import PartnerService
from services.profit_share_service import ProfitShareService
from services.responses import service_response
from .models import Partner, ProfitShareDetail, ProfitShareRule
from .serializers import DetailIdsSerializer, PartnerSerializer, ProfitShareDetailSerializer, ProfitShareRuleSerializer

READ_ACTIONS = ('list', 'retrieve', 'profit_summary')


class StaffWriteMixin:
    """Finance may read; only staff may write."""

    def get_permissions(self):
        if self.action in READ_ACTIONS:
            return [IsFinanceOrStaff()]
        return [IsStaffRole()]


@swagger_auto_schema(tags=['Partners'])
class PartnerViewSet(StaffWriteMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = PartnerSerializer
    filter_backends = [filters.SearchFilter]
    search_fields = ['name', 'contact_name', 'email']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Partner.objects.none()
        queryset = Partner.objects.annotate(client_count=Count('clients'))
        if self.request.query_params.get('status'):
            queryset = queryset.filter(status=self.request.query_params['status'])
        return queryset

    @swagger_auto_schema(request_body=PartnerSerializer, responses={201: PartnerSerializer, 400: ErrorResponseSerializer}, tags=['Partners'])
    def create(self, request, *args, **kwargs):
        serializer = PartnerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PartnerService(request.user).create_partner(serializer.validated_data)
        if result.success:
            result.data = PartnerSerializer(result.data).data
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(request_body=PartnerSerializer, responses={200: PartnerSerializer}, tags=['Partners'])
    def partial_update(self, request, *args, **kwargs):
        serializer = PartnerSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = PartnerService(request.user).update_partner(kwargs['pk'], serializer.validated_data)
        if result.success:
            result.data = PartnerSerializer(result.data).data
        return service_response(result)

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        return service_response(PartnerService(request.user).delete_partner(kwargs['pk']))

    @swagger_auto_schema(method='get', responses={200: "Partner profit totals and details"}, tags=['Partners'])
    @action(detail=True, methods=['get'], url_path='profit-summary')
    def profit_summary(self, request, pk=None):
        partner = self.get_object()
        result = ProfitShareService(request.user).get_partner_profit_summary(partner.id)
        result.data['details'] = ProfitShareDetailSerializer(result.data['details'], many=True).data
        return service_response(result)


@swagger_auto_schema(tags=['Profit Share'])
class ProfitShareRuleViewSet(StaffWriteMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = ProfitShareRuleSerializer
    filterset_fields = ['partner', 'status', 'applies_to']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return ProfitShareRule.objects.none()
        return ProfitShareRule.objects.select_related('partner')

    @swagger_auto_schema(request_body=ProfitShareRuleSerializer, responses={201: ProfitShareRuleSerializer}, tags=['Profit Share'])
    def create(self, request, *args, **kwargs):
        serializer = ProfitShareRuleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ProfitShareService(request.user).create_rule(serializer.validated_data)
        if result.success:
            result.data = ProfitShareRuleSerializer(result.data).data
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(request_body=ProfitShareRuleSerializer, responses={200: ProfitShareRuleSerializer}, tags=['Profit Share'])
    def partial_update(self, request, *args, **kwargs):
        serializer = ProfitShareRuleSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('partner_id', None)
        result = ProfitShareService(request.user).update_rule(kwargs['pk'], data)
        if result.success:
            result.data = ProfitShareRuleSerializer(result.data).data
        return service_response(result)

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    @swagger_auto_schema(method='post', responses={200: "Rule deactivated"}, tags=['Profit Share'])
    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        return service_response(ProfitShareService(request.user).deactivate_rule(pk))


@swagger_auto_schema(tags=['Profit Share'])
class ProfitShareDetailViewSet(StaffWriteMixin, viewsets.ReadOnlyModelViewSet):
    """
    Computed splits, one per partner-client transaction.
    """
    serializer_class = ProfitShareDetailSerializer
    filterset_fields = ['partner', 'status', 'client', 'transaction_type']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return ProfitShareDetail.objects.none()
        return ProfitShareDetail.objects.select_related('partner', 'rule', 'client')

    @swagger_auto_schema(method='post', responses={200: "Profit share paid"}, tags=['Profit Share'])
    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        return service_response(ProfitShareService(request.user).mark_profit_share_paid(pk))

    @swagger_auto_schema(method='post', request_body=DetailIdsSerializer, tags=['Profit Share'])
    @action(detail=False, methods=['post'], url_path='bulk-mark-paid')
    def bulk_mark_paid(self, request):
        serializer = DetailIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            ProfitShareService(request.user).bulk_mark_profit_shares_paid(serializer.validated_data['detail_ids'])
        )
