from rest_framework import serializers

from emr.models import Appointment


class AppointmentCreateSerializer(serializers.Serializer):
    clinic_id = serializers.IntegerField()
    patient_id = serializers.IntegerField()
    provider_id = serializers.IntegerField(required=False, allow_null=True)
    service_id = serializers.IntegerField(required=False, allow_null=True)
    scheduled_start = serializers.DateTimeField()
    scheduled_end = serializers.DateTimeField()
    source = serializers.ChoiceField(choices=Appointment.SOURCE_CHOICES, required=False, default='walk_in')
    reason_for_visit = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['scheduled_end'] <= attrs['scheduled_start']:
            raise serializers.ValidationError({'scheduled_end': 'end must be after start'})
        return attrs


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RescheduleSerializer(serializers.Serializer):
    scheduled_start = serializers.DateTimeField()
    scheduled_end = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['scheduled_end'] <= attrs['scheduled_start']:
            raise serializers.ValidationError({'scheduled_end': 'end must be after start'})
        return attrs


class AppointmentQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    provider = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    patient = serializers.IntegerField(required=False)
