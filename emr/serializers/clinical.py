import bleach
from rest_framework import serializers

from emr.models import EMRNote


class NoteCreateSerializer(serializers.Serializer):
    note_type = serializers.ChoiceField(choices=EMRNote.NOTE_TYPE_CHOICES)
    content = serializers.CharField()
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False, default=list)
    appointment_id = serializers.IntegerField(required=False, allow_null=True)
    visibility = serializers.CharField(max_length=16, required=False, default='clinical')

    def validate_content(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('note content is required')
        return v


class TriageSerializer(serializers.Serializer):
    chief_complaint = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
