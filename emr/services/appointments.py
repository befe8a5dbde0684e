import logging
from typing import Optional

import bleach
from django.db import transaction
from rest_framework.exceptions import ValidationError

from emr.exceptions import ConflictError
from emr.models import Appointment
from emr.services.audit import log_action

logger = logging.getLogger('emr.appointments')


def _can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    transitions = {
        'booked': ['confirmed', 'arrived', 'cancelled', 'no_show'],
        'confirmed': ['arrived', 'cancelled', 'no_show'],
        'arrived': ['in_progress', 'cancelled'],
        'in_progress': ['completed'],
        'completed': [],
        'cancelled': [],
        'no_show': [],
        'rescheduled': [],
    }
    return new in transitions.get(current, [])


def _check_slot(provider, start, end, exclude_id: Optional[int] = None) -> None:
    if end <= start:
        raise ValidationError({'scheduled_end': 'end must be after start'})
    if provider is None:
        return
    clash = Appointment.objects.select_for_update().filter(
        provider=provider,
        status__in=Appointment.ACTIVE_STATUSES,
        scheduled_start__lt=end,
        scheduled_end__gt=start,
    )
    if exclude_id:
        clash = clash.exclude(id=exclude_id)
    other = clash.first()
    if other:
        raise ConflictError(
            f'provider already has appointment #{other.id} from '
            f'{other.scheduled_start.isoformat()} to {other.scheduled_end.isoformat()}'
        )


@transaction.atomic
def book_appointment(operator, *, clinic, patient, scheduled_start, scheduled_end, provider=None,
                     service=None, source: str = 'walk_in', reason_for_visit: str = '',
                     notes: str = '', rescheduled_from=None, _exclude_id: Optional[int] = None) -> Appointment:
    _check_slot(provider, scheduled_start, scheduled_end, exclude_id=_exclude_id)
    appt = Appointment.objects.create(
        clinic=clinic,
        patient=patient,
        provider=provider,
        service=service,
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
        status='booked',
        source=source,
        reason_for_visit=bleach.clean(reason_for_visit or '', strip=True),
        notes=bleach.clean(notes or '', strip=True),
        rescheduled_from=rescheduled_from,
        created_by=operator,
    )
    log_action(user=operator, action='appointment_book', resource_type='appointment', resource_id=appt.id,
               detail={'patientId': patient.id, 'providerId': getattr(provider, 'id', None),
                       'start': scheduled_start.isoformat()})
    logger.info('appointment %s booked for patient %s', appt.id, patient.mrn)
    return appt


@transaction.atomic
def change_appointment_status(operator, appt: Appointment, new_status: str, reason: str = '') -> Appointment:
    appt = Appointment.objects.select_for_update().get(id=appt.id)
    old_status = appt.status
    if not _can_transition(old_status, new_status):
        raise ConflictError(f'cannot move appointment from {old_status} to {new_status}')
    appt.status = new_status
    appt.save(update_fields=['status', 'updated_at'])
    log_action(user=operator, action='appointment_status', resource_type='appointment', resource_id=appt.id,
               detail={'from': old_status, 'to': new_status, 'reason': reason})
    return appt


@transaction.atomic
def reschedule_appointment(operator, appt: Appointment, *, scheduled_start, scheduled_end,
                           notes: str = '') -> Appointment:
    """Mark ``appt`` rescheduled and book its replacement in one step."""
    appt = Appointment.objects.select_for_update().select_related('clinic', 'patient').get(id=appt.id)
    if appt.status not in ('booked', 'confirmed'):
        raise ConflictError(f'cannot reschedule an appointment in status {appt.status}')
    new_appt = book_appointment(
        operator,
        clinic=appt.clinic,
        patient=appt.patient,
        provider=appt.provider,
        service=appt.service,
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
        source=appt.source,
        reason_for_visit=appt.reason_for_visit,
        notes=notes or appt.notes,
        rescheduled_from=appt,
        _exclude_id=appt.id,
    )
    appt.status = 'rescheduled'
    appt.save(update_fields=['status', 'updated_at'])
    log_action(user=operator, action='appointment_reschedule', resource_type='appointment',
               resource_id=appt.id, detail={'newId': new_appt.id})
    return new_appt


def list_appointments(*, date=None, provider_id=None, status=None, patient_id=None):
    qs = Appointment.objects.select_related('patient', 'provider', 'service', 'clinic')
    if date:
        qs = qs.filter(scheduled_start__date=date)
    if provider_id:
        qs = qs.filter(provider_id=provider_id)
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    return qs.order_by('scheduled_start', 'id')


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'clinicId': a.clinic_id,
        'patientId': a.patient_id,
        'patientName': a.patient.full_name,
        'mrn': a.patient.mrn,
        'providerId': a.provider_id,
        'providerName': a.provider.display_name if a.provider else None,
        'serviceId': a.service_id,
        'serviceName': a.service.name if a.service else None,
        'scheduledStart': a.scheduled_start.isoformat(),
        'scheduledEnd': a.scheduled_end.isoformat(),
        'status': a.status,
        'source': a.source,
        'reasonForVisit': a.reason_for_visit,
        'notes': a.notes,
        'rescheduledFrom': a.rescheduled_from_id,
    }
