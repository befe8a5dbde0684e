from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Patient, Ticket
from ..permissions import IsClinician
from ..serializers.clinical import NoteCreateSerializer, TriageSerializer
from ..services.clinical import add_note, list_notes, serialize_note, triage_assessment
from ..services.queueing import serialize_ticket


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinician])
def patient_notes(request, patient_id: int):
    patient = get_object_or_404(Patient, id=patient_id)
    if request.method == 'POST':
        s = NoteCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        appointment = None
        if vd.get('appointment_id'):
            appointment = get_object_or_404(Appointment, id=vd['appointment_id'], patient=patient)
        note = add_note(request.user, patient, note_type=vd['note_type'], content=vd['content'],
                        tags=vd['tags'], appointment=appointment, visibility=vd['visibility'])
        return Response({'ok': True, 'data': serialize_note(note)}, status=201)
    notes = list_notes(patient)
    if request.query_params.get('type'):
        notes = notes.filter(note_type=request.query_params['type'])
    return Response({'ok': True, 'data': [serialize_note(n) for n in notes[:200]]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def ticket_triage(request, ticket_id: int):
    """Complete triage for a ticket and send the patient to the doctor queue."""
    ticket = get_object_or_404(Ticket, id=ticket_id)
    s = TriageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    note, doctor_ticket = triage_assessment(request.user, ticket, **s.validated_data)
    return Response({
        'ok': True,
        'note': serialize_note(note),
        'ticket': serialize_ticket(doctor_ticket),
    }, status=201)
