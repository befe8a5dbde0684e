"""
Registration to triage hand-off.

:func:`admit_to_triage_if_ready` is the only code path that places a
patient in a queue without a person asking for it.  Both the payment
and the consent services call it inside their own transaction, so a
failure here rolls back the payment or consent that triggered it.
"""
import logging
from typing import Optional

from django.conf import settings

from emr.models import Patient, Queue, Ticket
from emr.services.billing import latest_invoice
from emr.services.patients import active_ticket, has_valid_consent, refresh_registration_status
from emr.services.queueing import enqueue_patient

logger = logging.getLogger('emr.patient_flow')

AUTO_ADMIT_NOTE = 'Auto-added after payment'


def triage_queue() -> Optional[Queue]:
    return Queue.objects.filter(queue_type='triage', is_active=True).order_by('name', 'id').first()


def admit_to_triage_if_ready(operator, patient: Patient) -> Optional[Ticket]:
    """Queue ``patient`` for triage once payment and consent are on file.

    Returns the new ticket, or None when the patient is not ready or is
    already queued.  Safe to call repeatedly.
    """
    refresh_registration_status(patient)
    invoice = latest_invoice(patient)
    if invoice is None or invoice.status != 'paid':
        return None
    if settings.CLINIC_REQUIRE_CONSENT_FOR_TRIAGE and not has_valid_consent(patient):
        logger.info('patient %s paid but has no consent on file; not queued yet', patient.mrn)
        return None
    if active_ticket(patient) is not None:
        return None
    queue = triage_queue()
    if queue is None:
        logger.warning('no active triage queue; patient %s left unqueued', patient.mrn)
        return None
    ticket = enqueue_patient(operator, patient, queue, priority='routine', notes=AUTO_ADMIT_NOTE)
    logger.info('patient %s admitted to triage with token %s', patient.mrn, ticket.token_number)
    return ticket
