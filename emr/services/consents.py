import logging

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from emr.models import ConsentForm, Patient
from emr.services.audit import log_action
from emr.services.patient_flow import admit_to_triage_if_ready

logger = logging.getLogger('emr.consents')

SIGNATURE_PREFIX = 'data:image/'
GUARDIAN_FIELDS = ('guardian_name', 'guardian_relationship', 'guardian_phone', 'guardian_national_id')


@transaction.atomic
def record_consent(operator, patient: Patient, data: dict):
    """Store a signed consent and admit the patient to triage if ready.

    Returns ``(consent, ticket)``; ``ticket`` is None unless this consent
    completed the registration.
    """
    signature = (data.get('signature_blob') or '').strip()
    if not signature.startswith(SIGNATURE_PREFIX) or len(signature) <= len(SIGNATURE_PREFIX):
        raise ValidationError({'signature_blob': 'a signature image (data:image/... URL) is required'})
    signed_by = data.get('signed_by') or 'patient'
    guardian = {f: bleach.clean((data.get(f) or '').strip(), strip=True) for f in GUARDIAN_FIELDS}
    if signed_by == 'guardian' and not (guardian['guardian_name'] and guardian['guardian_relationship']):
        raise ValidationError({'guardian_name': 'guardian name and relationship are required'})

    patient = Patient.objects.select_for_update().get(id=patient.id)
    now = timezone.now()
    consent = ConsentForm.objects.create(
        patient=patient,
        consent_type=data['consent_type'],
        version=data.get('version') or '1.0',
        signed_by=signed_by,
        signature_blob=signature,
        evidence=data.get('evidence') or {},
        signed_at=now,
        witness=operator if getattr(operator, 'pk', None) else None,
        expires_at=data.get('expires_at'),
        **guardian,
    )
    if patient.consent_completed_at is None:
        patient.consent_completed_at = now
        patient.save(update_fields=['consent_completed_at', 'updated_at'])
    log_action(user=operator, action='consent_record', resource_type='patient', resource_id=patient.id,
               detail={'consentId': consent.id, 'type': consent.consent_type, 'signedBy': signed_by})
    logger.info('consent %s (%s) recorded for patient %s', consent.id, consent.consent_type, patient.mrn)
    ticket = admit_to_triage_if_ready(operator, patient)
    return consent, ticket


def serialize_consent(c: ConsentForm, include_signature: bool = False) -> dict:
    data = {
        'id': c.id,
        'patientId': c.patient_id,
        'consentType': c.consent_type,
        'version': c.version,
        'signedBy': c.signed_by,
        'guardianName': c.guardian_name,
        'guardianRelationship': c.guardian_relationship,
        'signedAt': c.signed_at.isoformat(),
        'expiresAt': c.expires_at.isoformat() if c.expires_at else None,
        'witnessId': c.witness_id,
        'evidence': c.evidence,
    }
    if include_signature:
        data['signatureBlob'] = c.signature_blob
    return data
