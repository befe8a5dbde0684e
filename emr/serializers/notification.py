from rest_framework import serializers

from emr.models import NotificationLog, NotificationTemplate, UserRole


class NotificationSendSerializer(serializers.Serializer):
    recipient_type = serializers.ChoiceField(choices=NotificationLog.RECIPIENT_TYPE_CHOICES)
    recipient_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    role = serializers.ChoiceField(choices=UserRole.ROLE_CHOICES, required=False, allow_null=True)
    notification_type = serializers.ChoiceField(choices=NotificationTemplate.TYPE_CHOICES)
    subject = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    body = serializers.CharField(required=False, allow_blank=True, default='')
    template_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('body') and not attrs.get('template_id'):
            raise serializers.ValidationError({'body': 'body or template_id is required'})
        if attrs['recipient_type'] == 'role' and not attrs.get('role'):
            raise serializers.ValidationError({'role': 'role is required for role notifications'})
        if attrs['recipient_type'] != 'role' and not attrs.get('recipient_ids'):
            raise serializers.ValidationError({'recipient_ids': 'at least one recipient is required'})
        return attrs


class TemplateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    notification_type = serializers.ChoiceField(choices=NotificationTemplate.TYPE_CHOICES, default='email')
    subject = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    body = serializers.CharField()
    is_active = serializers.BooleanField(required=False, default=True)
