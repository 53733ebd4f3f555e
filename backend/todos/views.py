from django.utils import timezone
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser

from authentication.permissions import IsAgentOrStaff
from services.responses import service_response
from services.todo_service import ToDoService
from .models import ToDo
from .serializers import ConfirmUploadSerializer, ToDoSerializer


@swagger_auto_schema(tags=['To-dos'])
class ToDoViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Agents see the to-dos assigned to them; staff see every to-do.

    ``?open=true`` limits the list to pending and in-progress items and
    ``?overdue=true`` to open items past their due date.
    """
    serializer_class = ToDoSerializer
    permission_classes = [IsAgentOrStaff]
    filter_backends = [filters.OrderingFilter]
    ordering_fields = ['due_date', 'priority', 'created_at']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return ToDo.objects.none()

        user = self.request.user
        queryset = ToDo.objects.select_related('client', 'assigned_to')
        if not user.is_staff_role:
            queryset = queryset.filter(assigned_to=user)

        params = self.request.query_params
        for field in ('status', 'type', 'client', 'platform_type'):
            value = params.get(field)
            if value:
                queryset = queryset.filter(**{field: value})
        if params.get('open') == 'true':
            queryset = queryset.filter(status__in=ToDo.OPEN_STATUSES)
        if params.get('overdue') == 'true':
            queryset = queryset.filter(status__in=ToDo.OPEN_STATUSES, due_date__lt=timezone.now())
        return queryset

    @swagger_auto_schema(method='post', responses={200: "Detected screenshot contents"}, tags=['To-dos'])
    @action(detail=True, methods=['post'], url_path='upload-screenshots', parser_classes=[MultiPartParser, FormParser])
    def upload_screenshots(self, request, pk=None):
        """Store up to five screenshots and return what each one appears to show."""
        files = request.FILES.getlist('files')
        return service_response(ToDoService(request.user).upload_todo_screenshots(pk, files))

    @swagger_auto_schema(method='post', request_body=ConfirmUploadSerializer, tags=['To-dos'])
    @action(detail=True, methods=['post'], url_path='confirm-upload')
    def confirm_upload(self, request, pk=None):
        serializer = ConfirmUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return service_response(
            ToDoService(request.user).confirm_todo_upload(pk, serializer.validated_data['detections'])
        )

    @swagger_auto_schema(method='post', responses={200: "New due date"}, tags=['To-dos'])
    @action(detail=True, methods=['post'], url_path='request-extension')
    def request_extension(self, request, pk=None):
        return service_response(ToDoService(request.user).request_todo_extension(pk))
