"""
Accounts serializers - request validation and user/device representations
"""
from rest_framework import serializers

from .models import DeviceSession, User


class UserSerializer(serializers.ModelSerializer):
    emailVerified = serializers.BooleanField(source='email_verified', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'name', 'surname', 'email', 'phone', 'role', 'avatar', 'bio',
            'emailVerified', 'isActive', 'createdAt', 'updatedAt',
        ]
        read_only_fields = fields


class DeviceSessionSerializer(serializers.ModelSerializer):
    deviceName = serializers.CharField(source='device_name')
    deviceType = serializers.CharField(source='device_type')
    ipAddress = serializers.CharField(source='ip_address', allow_null=True)
    lastActiveAt = serializers.DateTimeField(source='last_active_at')
    createdAt = serializers.DateTimeField(source='created_at')
    isCurrent = serializers.SerializerMethodField()

    class Meta:
        model = DeviceSession
        fields = ['id', 'deviceName', 'deviceType', 'browser', 'ipAddress', 'lastActiveAt', 'createdAt', 'isCurrent']
        read_only_fields = fields

    def get_isCurrent(self, obj):
        current = self.context.get('refresh_token')
        return bool(current) and obj.refresh_token == current


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    surname = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(min_length=8, max_length=128, write_only=True)

    def validate_email(self, value):
        return value.strip().lower()

    def validate_phone(self, value):
        return value.strip() if value else None


class DeviceHintsSerializer(serializers.Serializer):
    screenResolution = serializers.CharField(required=False, allow_blank=True)
    timezone = serializers.CharField(required=False, allow_blank=True)
    colorDepth = serializers.CharField(required=False, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    deviceInfo = DeviceHintsSerializer(required=False)

    def validate_email(self, value):
        return value.strip().lower()


class RefreshSerializer(serializers.Serializer):
    refreshToken = serializers.CharField(required=False, allow_blank=True)


class VerifyEmailSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        return value.strip().lower()


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)
    password = serializers.CharField(min_length=8, max_length=128, write_only=True)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(write_only=True)
    newPassword = serializers.CharField(min_length=8, max_length=128, write_only=True)


class DeviceNameSerializer(serializers.Serializer):
    deviceName = serializers.CharField(max_length=255)
