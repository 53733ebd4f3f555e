from rest_framework import serializers

from authentication.serializers import UserLiteSerializer
from .models import ApplicationDraft, Client, ClientPlatform, EventLog, ExtensionRequest, PhoneAssignment
from .platforms import PLATFORM_CHOICES, get_platform_name


class ClientPlatformSerializer(serializers.ModelSerializer):
    platform_name = serializers.SerializerMethodField()
    reviewed_by_name = serializers.CharField(source='reviewed_by.name', read_only=True, default=None)

    class Meta:
        model = ClientPlatform
        fields = [
            'id', 'platform_type', 'platform_name', 'status', 'username', 'account_id',
            'screenshots', 'agent_result', 'review_notes', 'reviewed_by', 'reviewed_by_name',
            'reviewed_at', 'retry_after', 'retry_count', 'updated_at',
        ]
        read_only_fields = fields

    def get_platform_name(self, obj):
        return get_platform_name(obj.platform_type)


class ClientListSerializer(serializers.ModelSerializer):
    """Compact row for client tables."""
    name = serializers.CharField(read_only=True)
    agent_name = serializers.CharField(source='agent.name', read_only=True, default=None)
    partner_name = serializers.CharField(source='partner.name', read_only=True, default=None)

    class Meta:
        model = Client
        fields = [
            'id', 'first_name', 'last_name', 'name', 'email', 'phone', 'intake_status',
            'agent', 'agent_name', 'partner', 'partner_name', 'execution_deadline',
            'deadline_extensions', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ClientSerializer(ClientListSerializer):
    """
    Full client record. The Gmail password is only included for staff.
    """
    platforms = ClientPlatformSerializer(many=True, read_only=True)
    closed_by_name = serializers.CharField(source='closed_by.name', read_only=True, default=None)

    class Meta(ClientListSerializer.Meta):
        fields = ClientListSerializer.Meta.fields + [
            'status_changed_at', 'prequal_completed', 'questionnaire', 'gmail_account', 'gmail_password',
            'id_document', 'id_expiry', 'date_of_birth', 'address',
            'closed_at', 'closure_reason', 'closure_proof', 'closed_by', 'closed_by_name', 'platforms',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get('request')
        if not (request and getattr(request.user, 'is_staff_role', False)):
            data.pop('gmail_password', None)
        return data


class ClientCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    partner_id = serializers.IntegerField(required=False, allow_null=True)


class PrequalificationSerializer(serializers.Serializer):
    """
    Prequalification form. Field-level rules (Gmail, ID confirmation, expiry)
    are checked by IntakeService so the agent sees every problem at once.
    """
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    middle_name = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    gmail_account = serializers.CharField(required=False, allow_blank=True)
    gmail_password = serializers.CharField(required=False, allow_blank=True)
    agent_confirms_id = serializers.BooleanField(required=False, default=False)
    id_document = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    id_expiry = serializers.DateField(required=False, allow_null=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    betmgm_result = serializers.ChoiceField(choices=['success', 'failed'], required=False, allow_null=True)
    betmgm_login_screenshot = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    betmgm_deposit_screenshot = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    draft_id = serializers.IntegerField(required=False, allow_null=True)


class GmailCredentialsSerializer(serializers.Serializer):
    gmail_account = serializers.CharField()
    gmail_password = serializers.CharField()


class StatusTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Client.INTAKE_STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class OptionalReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DeadlineDaysSerializer(serializers.Serializer):
    days = serializers.IntegerField(required=False, min_value=1, max_value=30)


class PhoneAssignSerializer(serializers.Serializer):
    phone_number = serializers.CharField(max_length=30)
    device_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ExtensionRequestCreateSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)
    requested_days = serializers.IntegerField(required=False, min_value=1, max_value=10)


class ReviewNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BetMGMRetrySerializer(serializers.Serializer):
    agent_result = serializers.ChoiceField(choices=['success', 'failed'])
    screenshots = serializers.ListField(child=serializers.CharField(), allow_empty=True)


class ClosureSerializer(serializers.Serializer):
    reason = serializers.CharField()
    proof_urls = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    skip_balance_check = serializers.BooleanField(required=False, default=False)


class PlatformScreenshotSerializer(serializers.Serializer):
    platform_type = serializers.ChoiceField(choices=PLATFORM_CHOICES)
    file = serializers.FileField()


class PlatformScreenshotDeleteSerializer(serializers.Serializer):
    platform_type = serializers.ChoiceField(choices=PLATFORM_CHOICES)
    path = serializers.CharField()


class PartnerAssignSerializer(serializers.Serializer):
    partner_id = serializers.IntegerField(allow_null=True)


class BulkPartnerAssignSerializer(serializers.Serializer):
    client_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    partner_id = serializers.IntegerField(allow_null=True)


class EventLogSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.name', read_only=True, default=None)
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)

    class Meta:
        model = EventLog
        fields = [
            'id', 'event_type', 'description', 'client', 'client_name', 'user', 'user_name',
            'old_value', 'new_value', 'metadata', 'created_at',
        ]
        read_only_fields = fields


class ApplicationDraftSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationDraft
        fields = ['id', 'data', 'step', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class PhoneAssignmentSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    agent = UserLiteSerializer(read_only=True)

    class Meta:
        model = PhoneAssignment
        fields = [
            'id', 'client', 'client_name', 'agent', 'phone_number', 'device_id', 'notes',
            'issued_at', 'signed_out_at', 'returned_at', 'created_at',
        ]
        read_only_fields = fields


class ExtensionRequestSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    requested_by_name = serializers.CharField(source='requested_by.name', read_only=True)
    reviewed_by_name = serializers.CharField(source='reviewed_by.name', read_only=True, default=None)

    class Meta:
        model = ExtensionRequest
        fields = [
            'id', 'client', 'client_name', 'requested_by', 'requested_by_name', 'reason', 'requested_days',
            'current_deadline', 'new_deadline', 'status', 'reviewed_by', 'reviewed_by_name',
            'reviewed_at', 'review_notes', 'created_at',
        ]
        read_only_fields = fields
