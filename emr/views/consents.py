from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Patient
from ..permissions import IsStaff, require_roles
from ..serializers.consent import ConsentCreateSerializer
from ..services.consents import record_consent, serialize_consent
from ..services.queueing import serialize_ticket


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_consents(request, patient_id: int):
    """List or record the patient's signed consents.

    Recording a consent may complete the registration, in which case the
    response carries the triage ticket that was issued.
    """
    patient = get_object_or_404(Patient, id=patient_id)
    if request.method == 'POST':
        require_roles(request, 'reception', 'clinician')
        s = ConsentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        consent, ticket = record_consent(request.user, patient, s.validated_data)
        return Response({
            'ok': True,
            'data': serialize_consent(consent),
            'ticket': serialize_ticket(ticket) if ticket else None,
        }, status=201)
    with_sig = request.query_params.get('signature') == '1'
    return Response({
        'ok': True,
        'data': [serialize_consent(c, include_signature=with_sig) for c in patient.consents.order_by('-signed_at')],
    })
