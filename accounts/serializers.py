"""
Serializers for the accounts app.

This module provides:
- RegisterSerializer: validates sign-up data and creates the user
- UserSerializer: the signed-in user's own record with permission keys
- UserSummarySerializer: compact user reference embedded in other payloads
- AdminUserSerializer: admin user rows with listing and deal statistics
- PublicProfileSerializer: the public agent profile card
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import ROLE_CHOICES

User = get_user_model()


# =============================================================================
# REGISTRATION
# =============================================================================

class RegisterSerializer(serializers.Serializer):
    """
    Sign-up payload.

    ``username`` defaults to the phone number when omitted.
    """

    username = serializers.CharField(max_length=150, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(write_only=True, required=True, allow_blank=True,
                                     error_messages={'required': 'Password is required'})
    full_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)

    def validate_phone(self, value):
        phone = (value or '').strip()
        if not phone:
            raise serializers.ValidationError('Phone number is required')
        if User.objects.filter(phone=phone).exists():
            raise serializers.ValidationError('User with this phone number already exists')
        return phone

    def validate_email(self, value):
        email = (value or '').strip()
        if email and User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError('User with this email already exists')
        return email

    def validate_password(self, value):
        if not value:
            raise serializers.ValidationError('Password is required')
        if len(value) < 6:
            raise serializers.ValidationError('Password must be at least 6 characters long.')
        return value

    def validate(self, attrs):
        if 'phone' not in attrs:
            raise serializers.ValidationError({'phone': 'Phone number is required'})

        username = (attrs.get('username') or '').strip() or attrs['phone']
        if User.objects.filter(username=username).exists():
            raise serializers.ValidationError({'username': 'Username already taken'})
        attrs['username'] = username
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email') or '',
            password=validated_data['password'],
            full_name=validated_data.get('full_name') or '',
            phone=validated_data['phone'],
        )


# =============================================================================
# USER REPRESENTATIONS
# =============================================================================

class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user reference (agent, creator) embedded in other payloads."""

    user_id = serializers.IntegerField(source='id', read_only=True)

    class Meta:
        model = User
        fields = ['user_id', 'full_name', 'phone', 'email', 'profile_picture', 'role']
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """The signed-in user, without the password hash."""

    user_id = serializers.IntegerField(source='id', read_only=True)
    permissions = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = [
            'user_id',
            'username',
            'email',
            'full_name',
            'phone',
            'profile_picture',
            'bio',
            'address',
            'national_id',
            'role',
            'is_active',
            'permissions',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return obj.get_permission_keys()


class AdminUserSerializer(UserSerializer):
    """
    User row for the admin screen.

    Expects the queryset to be annotated with ``property_count``,
    ``deal_count`` and ``total_volume``.
    """

    property_count = serializers.IntegerField(read_only=True)
    deal_count = serializers.IntegerField(read_only=True)
    total_volume = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['property_count', 'deal_count', 'total_volume']
        read_only_fields = fields

    def get_permissions(self, obj):
        # Prefetched by the admin list view
        return sorted(permission.permission_key for permission in obj.app_permissions.all())


class RecentUserSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='id', read_only=True)
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = ['user_id', 'full_name', 'email', 'role', 'created_at']
        read_only_fields = fields


class PublicProfileSerializer(serializers.ModelSerializer):
    """Public card for an agent or lister."""

    user_id = serializers.IntegerField(source='id', read_only=True)
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = ['user_id', 'full_name', 'profile_picture', 'bio', 'phone', 'email', 'role', 'created_at']
        read_only_fields = fields


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(
        choices=ROLE_CHOICES,
        error_messages={'invalid_choice': 'Invalid role', 'required': 'Invalid role'}
    )
