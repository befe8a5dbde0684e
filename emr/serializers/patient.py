import bleach
from django.utils import timezone
from rest_framework import serializers

from emr.models import Patient


class PatientCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    middle_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100)
    date_of_birth = serializers.DateField()
    sex_at_birth = serializers.ChoiceField(choices=Patient.SEX_CHOICES, required=False)
    phone_mobile = serializers.CharField(max_length=32)
    phone_alt = serializers.CharField(max_length=32, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    national_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    address_line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)
    emergency_contact_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    emergency_contact_phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    emergency_contact_relationship = serializers.CharField(max_length=64, required=False, allow_blank=True)
    registration_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_first_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('first name is required')
        return v

    def validate_last_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('last name is required')
        return v

    def validate_phone_mobile(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('mobile phone is required')
        return v

    def validate_date_of_birth(self, v):
        if v > timezone.localdate():
            raise serializers.ValidationError('date of birth cannot be in the future')
        return v


class PatientUpdateSerializer(PatientCreateSerializer):
    """Same fields as registration, all optional."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Patient.REGISTRATION_CHOICES, required=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)
