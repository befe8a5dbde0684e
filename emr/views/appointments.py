from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Clinic, Patient, Service, User
from ..permissions import IsScheduler
from ..serializers.appointment import (
    AppointmentCreateSerializer,
    AppointmentQuerySerializer,
    AppointmentStatusSerializer,
    RescheduleSerializer,
)
from ..services.appointments import (
    book_appointment,
    change_appointment_status,
    list_appointments,
    reschedule_appointment,
    serialize_appointment,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsScheduler])
def appointments(request):
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        appt = book_appointment(
            request.user,
            clinic=get_object_or_404(Clinic, id=vd['clinic_id'], is_active=True),
            patient=get_object_or_404(Patient, id=vd['patient_id']),
            provider=get_object_or_404(User, id=vd['provider_id']) if vd.get('provider_id') else None,
            service=get_object_or_404(Service, id=vd['service_id']) if vd.get('service_id') else None,
            scheduled_start=vd['scheduled_start'],
            scheduled_end=vd['scheduled_end'],
            source=vd['source'],
            reason_for_visit=vd['reason_for_visit'],
            notes=vd['notes'],
        )
        return Response({'ok': True, 'data': serialize_appointment(appt)}, status=201)

    q = AppointmentQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = list_appointments(date=vd.get('date'), provider_id=vd.get('provider'),
                           status=vd.get('status'), patient_id=vd.get('patient'))
    return Response({'ok': True, 'data': [serialize_appointment(a) for a in qs[:500]]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsScheduler])
def appointment_status(request, appointment_id: int):
    appt = get_object_or_404(Appointment, id=appointment_id)
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = change_appointment_status(request.user, appt, s.validated_data['status'], s.validated_data['reason'])
    return Response({'ok': True, 'data': serialize_appointment(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsScheduler])
def appointment_reschedule(request, appointment_id: int):
    appt = get_object_or_404(Appointment, id=appointment_id)
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    new_appt = reschedule_appointment(request.user, appt, **s.validated_data)
    return Response({'ok': True, 'data': serialize_appointment(new_appt), 'previousId': appt.id}, status=201)
