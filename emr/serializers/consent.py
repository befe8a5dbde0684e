from rest_framework import serializers

from emr.models import ConsentForm


class ConsentCreateSerializer(serializers.Serializer):
    consent_type = serializers.ChoiceField(choices=ConsentForm.CONSENT_TYPE_CHOICES)
    version = serializers.CharField(max_length=20, required=False, allow_blank=True)
    signed_by = serializers.ChoiceField(choices=ConsentForm.SIGNED_BY_CHOICES, required=False, default='patient')
    signature_blob = serializers.CharField()
    guardian_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    guardian_relationship = serializers.CharField(max_length=64, required=False, allow_blank=True)
    guardian_phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    guardian_national_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    evidence = serializers.DictField(required=False)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
