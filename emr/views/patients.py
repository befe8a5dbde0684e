"""
Patient registration and lookup.

Reception registers patients (which issues the MRN and the
registration invoice), searches them, and follows up on registrations
that still lack payment or consent.  Any staff role may read.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Patient
from ..permissions import IsReception, IsStaff, require_roles
from ..serializers.billing import serialize_invoice
from ..serializers.patient import PatientCreateSerializer, PatientUpdateSerializer, PatientListQuerySerializer
from ..services.clinical import list_notes, serialize_note
from ..services.consents import serialize_consent
from ..services.patients import (
    active_ticket,
    has_valid_consent,
    incomplete_registrations,
    register_patient,
    search_patients,
    update_patient,
)
from ..services.queueing import serialize_ticket


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'mrn': p.mrn,
        'firstName': p.first_name,
        'middleName': p.middle_name,
        'lastName': p.last_name,
        'fullName': p.full_name,
        'dateOfBirth': p.date_of_birth.isoformat(),
        'sexAtBirth': p.sex_at_birth,
        'phoneMobile': p.phone_mobile,
        'phoneAlt': p.phone_alt,
        'email': p.email,
        'nationalId': p.national_id,
        'addressLine1': p.address_line1,
        'city': p.city,
        'country': p.country,
        'emergencyContact': {
            'name': p.emergency_contact_name,
            'phone': p.emergency_contact_phone,
            'relationship': p.emergency_contact_relationship,
        },
        'registrationStatus': p.registration_status,
        'registrationNotes': p.registration_notes,
        'consentCompletedAt': p.consent_completed_at.isoformat() if p.consent_completed_at else None,
        'paymentCompletedAt': p.payment_completed_at.isoformat() if p.payment_completed_at else None,
        'createdAt': p.created_at.isoformat(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def patients(request):
    if request.method == 'POST':
        require_roles(request, 'reception', 'manager')
        s = PatientCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient, invoice = register_patient(request.user, s.validated_data)
        return Response({
            'ok': True,
            'data': serialize_patient(patient),
            'invoice': serialize_invoice(invoice),
        }, status=201)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page = vd.get('page') or 1
    page_size = vd.get('pageSize') or 20
    items, total = search_patients(vd.get('q'), registration_status=vd.get('status'),
                                   page=page, page_size=page_size)
    return Response({
        'ok': True,
        'data': [serialize_patient(p) for p in items],
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_detail(request, patient_id: int):
    patient = get_object_or_404(Patient, id=patient_id)
    return Response({'ok': True, 'data': serialize_patient(patient)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReception])
def patient_update(request, patient_id: int):
    patient = get_object_or_404(Patient, id=patient_id)
    s = PatientUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = update_patient(request.user, patient, s.validated_data)
    return Response({'ok': True, 'data': serialize_patient(patient)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReception])
def patients_incomplete(request):
    """Registrations still missing payment or consent, oldest first."""
    data = []
    for p in incomplete_registrations()[:200]:
        row = serialize_patient(p)
        row['missing'] = [
            step for step, done in (
                ('payment', p.payment_completed_at is not None),
                ('consent', has_valid_consent(p)),
            ) if not done
        ]
        data.append(row)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_summary(request, patient_id: int):
    patient = get_object_or_404(Patient, id=patient_id)
    ticket = active_ticket(patient)
    return Response({
        'ok': True,
        'data': {
            'patient': serialize_patient(patient),
            'consents': [serialize_consent(c) for c in patient.consents.order_by('-signed_at')],
            'invoices': [serialize_invoice(i) for i in patient.invoices.order_by('-created_at')[:20]],
            'activeTicket': serialize_ticket(ticket) if ticket else None,
            'recentNotes': [serialize_note(n) for n in list_notes(patient, limit=5)],
        },
    })
