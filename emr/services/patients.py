import logging
from typing import Optional

import bleach
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from emr.models import Patient, ConsentForm, Ticket
from emr.services.audit import log_action
from emr.services.billing import create_registration_invoice
from emr.services.sequences import generate_mrn

logger = logging.getLogger('emr.patients')

EDITABLE_FIELDS = (
    'first_name', 'middle_name', 'last_name', 'date_of_birth', 'sex_at_birth',
    'phone_mobile', 'phone_alt', 'email', 'national_id', 'address_line1', 'city', 'country',
    'emergency_contact_name', 'emergency_contact_phone', 'emergency_contact_relationship',
    'registration_notes',
)


def _clean(value):
    if isinstance(value, str):
        return bleach.clean(value.strip(), strip=True)
    return value


def has_valid_consent(patient: Patient) -> bool:
    now = timezone.now()
    return ConsentForm.objects.filter(patient=patient).filter(
        Q(expires_at__isnull=True) | Q(expires_at__gt=now)
    ).exists()


def active_ticket(patient: Patient) -> Optional[Ticket]:
    return (
        Ticket.objects.select_related('queue')
        .filter(patient=patient, status__in=Ticket.ACTIVE_STATUSES)
        .order_by('-created_at')
        .first()
    )


def refresh_registration_status(patient: Patient) -> str:
    """Derive ``registration_status`` from payment and consent state."""
    paid = patient.payment_completed_at is not None
    consented = has_valid_consent(patient)
    if paid and (consented or not settings.CLINIC_REQUIRE_CONSENT_FOR_TRIAGE):
        new_status = 'completed'
    elif paid:
        new_status = 'paid'
    elif consented:
        new_status = 'consented'
    else:
        new_status = 'pending'
    if patient.registration_status != new_status:
        patient.registration_status = new_status
        patient.save(update_fields=['registration_status', 'updated_at'])
    return new_status


@transaction.atomic
def register_patient(operator, data: dict):
    """Create a patient with a fresh MRN and an issued registration invoice.

    Returns ``(patient, invoice)``.  The patient is not queued here; that
    happens once payment and consent are both on file.
    """
    fields = {k: _clean(v) for k, v in data.items() if k in EDITABLE_FIELDS}
    patient = Patient.objects.create(
        mrn=generate_mrn(),
        registration_status='pending',
        created_by=operator,
        **fields,
    )
    invoice = create_registration_invoice(operator, patient)
    log_action(user=operator, action='patient_register', resource_type='patient', resource_id=patient.id,
               detail={'mrn': patient.mrn, 'invoiceId': invoice.id})
    logger.info('patient registered mrn=%s invoice=%s', patient.mrn, invoice.id)
    return patient, invoice


def update_patient(operator, patient: Patient, data: dict) -> Patient:
    changed = []
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(patient, field, _clean(data[field]))
            changed.append(field)
    if changed:
        patient.save(update_fields=changed + ['updated_at'])
        log_action(user=operator, action='patient_update', resource_type='patient', resource_id=patient.id,
                   detail={'fields': changed})
    return patient


def search_patients(q: Optional[str] = None, *, registration_status: Optional[str] = None,
                    page: int = 1, page_size: int = 20):
    qs = Patient.objects.all()
    if q:
        q = q.strip()
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(middle_name__icontains=q)
            | Q(mrn__icontains=q) | Q(phone_mobile__icontains=q)
        )
    if registration_status:
        qs = qs.filter(registration_status=registration_status)
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 20)))
    start = (page - 1) * page_size
    return list(qs.order_by('-created_at', '-id')[start:start + page_size]), total


def incomplete_registrations():
    return Patient.objects.exclude(registration_status='completed').order_by('created_at')
