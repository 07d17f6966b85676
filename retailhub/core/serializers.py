from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from .models import User, Tenant, AuditLog


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ['id', 'name', 'business_code', 'is_active', 'created_at']
        read_only_fields = ['created_at']


class UserSerializer(serializers.ModelSerializer):
    tenant = TenantSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role', 'tenant',
                  'is_active', 'is_staff', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    business_name = serializers.CharField(write_only=True, required=False, allow_blank=True)
    business_code = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=4)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone',
                  'role', 'business_name', 'business_code']

    def validate_business_code(self, value):
        value = (value or '').strip().upper()
        if value and len(value) != 4:
            raise serializers.ValidationError('Business code must be exactly 4 characters')
        if value and Tenant.objects.filter(business_code=value).exists():
            raise serializers.ValidationError('Business code already in use')
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        if bool(attrs.get('business_name')) != bool(attrs.get('business_code')):
            raise serializers.ValidationError({"business_code": "Business name and code must be given together"})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        business_name = validated_data.pop('business_name', '')
        business_code = validated_data.pop('business_code', '')

        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        if business_name:
            user.tenant = Tenant.objects.create(name=business_name, business_code=business_code, owner=user)
        user.save()
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']
