from rest_framework import serializers

from emr.models import UserRole

ROLE_CHOICES = [r for r, _ in UserRole.ROLE_CHOICES]


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True)
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ROLE_CHOICES), required=False, default=list)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')


class RolesSerializer(serializers.Serializer):
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ROLE_CHOICES), allow_empty=True)


class PasswordResetSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True)


class AuditLogQuerySerializer(serializers.Serializer):
    action = serializers.CharField(required=False, allow_blank=True)
    resourceType = serializers.CharField(required=False, allow_blank=True)
    resourceId = serializers.CharField(required=False, allow_blank=True)
    userId = serializers.IntegerField(required=False, min_value=1)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
