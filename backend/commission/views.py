from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from authentication.permissions import IsFinanceOrStaff, IsStaffRole
from services.commission_service import CommissionService
from services.responses import service_response
from .models import BonusAllocation, BonusPool
from .serializers import AgentIdSerializer, AllocationIdsSerializer, BonusAllocationSerializer, BonusPoolSerializer


@swagger_auto_schema(tags=['Commission'])
class BonusPoolViewSet(viewsets.ReadOnlyModelViewSet):
    """
    One pool per approved client with its allocations.
    """
    serializer_class = BonusPoolSerializer
    permission_classes = [IsFinanceOrStaff]
    filterset_fields = ['status', 'closer', 'client']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return BonusPool.objects.none()
        return BonusPool.objects.select_related('client', 'closer').prefetch_related(
            'allocations__agent', 'allocations__bonus_pool__client'
        )


@swagger_auto_schema(tags=['Commission'])
class BonusAllocationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Agents see their own allocations; staff and finance see everyone's.
    """
    serializer_class = BonusAllocationSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['status', 'type', 'agent', 'bonus_pool']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return BonusAllocation.objects.none()
        queryset = BonusAllocation.objects.select_related('agent', 'bonus_pool__client')
        if self.request.user.is_agent:
            queryset = queryset.filter(agent=self.request.user)
        return queryset

    @swagger_auto_schema(
        method='get',
        manual_parameters=[openapi.Parameter('agent_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER)],
        responses={200: "Earned, pending and paid totals"},
        tags=['Commission'],
    )
    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Totals for ``agent_id``; agents always get their own."""
        agent_id = request.user.id
        if not request.user.is_agent and request.query_params.get('agent_id'):
            params = AgentIdSerializer(data=request.query_params)
            params.is_valid(raise_exception=True)
            agent_id = params.validated_data['agent_id']

        result = CommissionService(request.user).get_agent_commission_summary(agent_id)
        result.data['allocations'] = BonusAllocationSerializer(result.data['allocations'], many=True).data
        return service_response(result)

    @swagger_auto_schema(method='post', responses={200: "Allocation paid"}, tags=['Commission'])
    @action(detail=True, methods=['post'], url_path='mark-paid', permission_classes=[IsStaffRole])
    def mark_paid(self, request, pk=None):
        return service_response(CommissionService(request.user).mark_allocation_paid(pk))

    @swagger_auto_schema(method='post', request_body=AllocationIdsSerializer, tags=['Commission'])
    @action(detail=False, methods=['post'], url_path='bulk-mark-paid', permission_classes=[IsStaffRole])
    def bulk_mark_paid(self, request):
        serializer = AllocationIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            CommissionService(request.user).bulk_mark_paid(serializer.validated_data['allocation_ids'])
        )

    @swagger_auto_schema(method='post', request_body=AgentIdSerializer, tags=['Commission'])
    @action(detail=False, methods=['post'], url_path='recalculate-star-level', permission_classes=[IsStaffRole])
    def recalculate_star_level(self, request):
        serializer = AgentIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = CommissionService(request.user).recalculate_star_level(serializer.validated_data['agent_id'])
        return service_response(result, error_status=status.HTTP_404_NOT_FOUND)
