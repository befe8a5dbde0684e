from rest_framework import serializers

from emr.models import Queue, Ticket


class QueueSerializer(serializers.Serializer):
    clinic_id = serializers.IntegerField()
    name = serializers.CharField(max_length=255)
    queue_type = serializers.ChoiceField(choices=Queue.TYPE_CHOICES)
    prefix = serializers.CharField(max_length=8, required=False, allow_blank=True, default='')
    is_active = serializers.BooleanField(required=False, default=True)
    sla_minutes = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class QueueUpdateSerializer(QueueSerializer):
    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class EnqueueSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField()
    queue_id = serializers.IntegerField()
    appointment_id = serializers.IntegerField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, required=False, default='routine')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TicketStatusSerializer(serializers.Serializer):
    # transfers go through their own endpoint because they need a target queue
    status = serializers.ChoiceField(choices=['waiting', 'called', 'served', 'no_show'])
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class TransferSerializer(serializers.Serializer):
    target_queue_id = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')
