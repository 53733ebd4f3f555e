"""
Authentication Views
- Token login and logout
- Current user profile
- Staff-managed user accounts (create, update, activate, password reset)
- Agent hierarchy, earnings and dashboard views
"""
from django.utils import timezone
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
import logging

from backoffice.reports import agent_dashboard_stats, agent_earnings, agent_kpis
from services.hierarchy_service import HierarchyService
from services.responses import service_response
from services.user_service import UserService
from .filters import UserFilter
from .models import User
from .permissions import IsAgentOrStaff, IsStaffRole
from .serializers import (
    AuthSuccessResponseSerializer,
    ErrorResponseSerializer,
    MessageResponseSerializer,
    PasswordResetSerializer,
    UserCreateSerializer,
    UserLoginSerializer,
    UserSerializer,
    UserUpdateSerializer,
)

# Security logger
security_logger = logging.getLogger('security')


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


@swagger_auto_schema(tags=['Users'])
class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Staff-only user management, plus read-only agent views that agents may
    open for themselves.

    Writes go through UserService, which applies the role restrictions for
    BACKOFFICE users and logs an event for every change.
    """
    serializer_class = UserSerializer
    filterset_class = UserFilter
    permission_classes = [IsStaffRole]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return User.objects.none()
        return User.objects.select_related('supervisor').order_by('first_name', 'last_name')

    @swagger_auto_schema(request_body=UserCreateSerializer, responses={201: UserSerializer, 400: ErrorResponseSerializer}, tags=['Users'])
    def create(self, request, *args, **kwargs):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = UserService(request.user).create_user(serializer.validated_data)
        if result.success:
            result.data = UserSerializer(result.data).data
        return service_response(result, success_status=status.HTTP_201_CREATED)

    @swagger_auto_schema(request_body=UserUpdateSerializer, responses={200: UserSerializer, 400: ErrorResponseSerializer}, tags=['Users'])
    def partial_update(self, request, *args, **kwargs):
        serializer = UserUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = UserService(request.user).update_user(kwargs['pk'], serializer.validated_data)
        if result.success:
            result.data = UserSerializer(result.data).data
        return service_response(result)

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    @swagger_auto_schema(method='post', responses={200: "Active flag toggled", 400: ErrorResponseSerializer}, tags=['Users'])
    @action(detail=True, methods=['post'], url_path='toggle-active')
    def toggle_active(self, request, pk=None):
        return service_response(UserService(request.user).toggle_user_active(pk))

    @swagger_auto_schema(method='post', request_body=PasswordResetSerializer, tags=['Users'])
    @action(detail=True, methods=['post'], url_path='reset-password')
    def reset_password(self, request, pk=None):
        serializer = PasswordResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            UserService(request.user).reset_user_password(pk, serializer.validated_data['new_password'])
        )

    @swagger_auto_schema(method='get', responses={200: "Agent KPIs"}, tags=['Users'])
    @action(detail=True, methods=['get'])
    def kpis(self, request, pk=None):
        agent = self.get_object()
        return Response({'success': True, 'data': agent_kpis(agent)})

    # ==================== AGENT VIEWS ====================
    # Agents may read their own numbers; staff may read anyone's.

    def _own_or_staff(self, request):
        agent = self.get_object()
        if not request.user.is_staff_role and agent.pk != request.user.pk:
            raise PermissionDenied("Unauthorized")
        return agent

    @swagger_auto_schema(method='get', responses={200: "Supervisor chain and subordinate tree"}, tags=['Users'])
    @action(detail=True, methods=['get'], permission_classes=[IsAgentOrStaff])
    def hierarchy(self, request, pk=None):
        return service_response(HierarchyService(request.user).get_agent_hierarchy(pk))

    @swagger_auto_schema(method='get', responses={200: "Team totals"}, tags=['Users'])
    @action(detail=True, methods=['get'], url_path='team-rollup', permission_classes=[IsAgentOrStaff])
    def team_rollup(self, request, pk=None):
        return service_response(HierarchyService(request.user).get_team_rollup(pk))

    @swagger_auto_schema(method='get', responses={200: "Commission earnings"}, tags=['Users'])
    @action(detail=True, methods=['get'], permission_classes=[IsAgentOrStaff])
    def earnings(self, request, pk=None):
        agent = self._own_or_staff(request)
        return Response({'success': True, 'data': agent_earnings(agent)})

    @swagger_auto_schema(method='get', responses={200: "Agent dashboard numbers"}, tags=['Users'])
    @action(detail=True, methods=['get'], permission_classes=[IsAgentOrStaff])
    def dashboard(self, request, pk=None):
        agent = self._own_or_staff(request)
        return Response({'success': True, 'data': agent_dashboard_stats(agent)})


@swagger_auto_schema(method='post', request_body=UserLoginSerializer, responses={200: AuthSuccessResponseSerializer, 401: ErrorResponseSerializer}, tags=['Authentication'])
@api_view(['POST'])
@permission_classes([AllowAny])
@authentication_classes([])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Exchange email and password for an API token."""
    serializer = UserLoginSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        user = serializer.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        token, _ = Token.objects.get_or_create(user=user)
        security_logger.info(f"Login successful for {user.email} ({user.role})")
        return Response(AuthSuccessResponseSerializer({'token': token.key, 'user': user}).data, status=status.HTTP_200_OK)

    security_logger.warning(f"Failed login attempt for {request.data.get('email', 'unknown')}")
    return Response({'success': False, 'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)


@swagger_auto_schema(method='post', responses={200: MessageResponseSerializer}, tags=['Authentication'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Logout user by deleting their authentication token."""
    if request.auth is not None:
        Token.objects.filter(user=request.user).delete()
    return Response({'message': 'Successfully logged out'}, status=status.HTTP_200_OK)


@swagger_auto_schema(method='get', responses={200: UserSerializer}, tags=['Authentication'])
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    """The signed-in user."""
    return Response(UserSerializer(request.user).data)


@swagger_auto_schema(method='get', responses={200: "Healthy"}, tags=['System'])
@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    return Response({'status': 'healthy'})
