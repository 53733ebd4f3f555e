from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User


class UserLiteSerializer(serializers.ModelSerializer):
    """A lightweight serializer for User model, showing only essential info plus the display name."""

    name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'name', 'role']


class UserSerializer(serializers.ModelSerializer):
    """A detailed serializer for the User model."""
    name = serializers.CharField(read_only=True)
    supervisor_name = serializers.CharField(source='supervisor.name', read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'name', 'phone', 'role',
            'is_active', 'supervisor', 'supervisor_name', 'star_level', 'tier',
            'date_joined', 'last_login',
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    """
    Payload for staff-created accounts. Business rules (role limits, email
    uniqueness) are enforced by UserService so the messages match everywhere.
    """
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    supervisor_id = serializers.IntegerField(required=False, allow_null=True)


class UserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    supervisor_id = serializers.IntegerField(required=False, allow_null=True)


class PasswordResetSerializer(serializers.Serializer):
    new_password = serializers.CharField(write_only=True, style={'input_type': 'password'})


class UserLoginSerializer(serializers.Serializer):
    """Serializer for user login."""
    email = serializers.EmailField()
    password = serializers.CharField(style={'input_type': 'password'}, trim_whitespace=False)

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')

        user = authenticate(request=self.context.get('request'), username=email, password=password)
        if not user:
            raise serializers.ValidationError('Invalid credentials', code='authorization')
        if not user.is_active:
            raise serializers.ValidationError('User account is disabled.', code='authorization')

        attrs['user'] = user
        return attrs


class AuthSuccessResponseSerializer(serializers.Serializer):
    token = serializers.CharField()
    user = UserSerializer()


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField(default=False)
    error = serializers.CharField()
