import logging

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from emr.exceptions import ConflictError
from emr.models import EMRNote, Queue, Ticket
from emr.services.audit import log_action
from emr.services.queueing import record_transition, broadcast_queue_update

logger = logging.getLogger('emr.clinical')

NOTE_TYPES = {k for k, _ in EMRNote.NOTE_TYPE_CHOICES}


def add_note(author, patient, *, note_type: str, content: str, tags=None, appointment=None,
             visibility: str = 'clinical') -> EMRNote:
    content = bleach.clean((content or '').strip(), strip=True)
    if not content:
        raise ValidationError({'content': 'note content is required'})
    if note_type not in NOTE_TYPES:
        raise ValidationError({'note_type': f'unknown note type {note_type}'})
    tags = [str(t).strip() for t in (tags or []) if str(t).strip()]
    note = EMRNote.objects.create(
        patient=patient, appointment=appointment, author=author, note_type=note_type,
        content=content, tags=tags, visibility=visibility or 'clinical',
    )
    log_action(user=author, action='note_add', resource_type='patient', resource_id=patient.id,
               detail={'noteId': note.id, 'type': note_type})
    return note


def list_notes(patient, limit=None):
    qs = EMRNote.objects.filter(patient=patient).select_related('author').order_by('-created_at', '-id')
    return qs[:limit] if limit else qs


def serialize_note(n: EMRNote) -> dict:
    return {
        'id': n.id,
        'patientId': n.patient_id,
        'appointmentId': n.appointment_id,
        'authorId': n.author_id,
        'authorName': n.author.display_name,
        'noteType': n.note_type,
        'content': n.content,
        'tags': n.tags,
        'visibility': n.visibility,
        'createdAt': n.created_at.isoformat(),
    }


@transaction.atomic
def triage_assessment(operator, ticket: Ticket, *, chief_complaint: str, notes: str = ''):
    """Record the triage note, close the triage ticket and queue for a doctor.

    Returns ``(note, doctor_ticket)``.  The doctor ticket keeps the
    triage token and priority.
    """
    chief_complaint = bleach.clean((chief_complaint or '').strip(), strip=True)
    notes = bleach.clean((notes or '').strip(), strip=True)
    if not chief_complaint:
        raise ValidationError({'chief_complaint': 'chief complaint is required'})
    ticket = Ticket.objects.select_for_update().select_related('queue', 'patient').get(id=ticket.id)
    if ticket.queue.queue_type != 'triage':
        raise ConflictError('ticket is not in a triage queue')
    if ticket.status not in Ticket.ACTIVE_STATUSES:
        raise ConflictError(f'cannot assess a ticket in status {ticket.status}')
    doctor_queue = Queue.objects.filter(queue_type='doctor', is_active=True).order_by('name', 'id').first()
    if doctor_queue is None:
        raise NotFound('no active doctor queue')

    note = EMRNote.objects.create(
        patient=ticket.patient,
        appointment=ticket.appointment,
        author=operator,
        note_type='subjective',
        content=f"**Chief Complaint:** {chief_complaint}\n\n**Triage Notes:**\n{notes}",
        tags=['triage', 'assessment'],
    )

    old_status = ticket.status
    ticket.status = 'served'
    ticket.served_at = timezone.now()
    ticket.served_by = operator
    ticket.save(update_fields=['status', 'served_at', 'served_by', 'updated_at'])
    record_transition(ticket, old_status, operator, 'triage assessment completed')

    doctor_ticket = Ticket.objects.create(
        queue=doctor_queue,
        patient=ticket.patient,
        appointment=ticket.appointment,
        token_number=ticket.token_number,
        status='waiting',
        priority=ticket.priority,
        notes=f'Transferred from triage. Chief complaint: {chief_complaint}',
    )
    record_transition(doctor_ticket, None, operator, 'queued after triage')
    log_action(user=operator, action='triage_assessment', resource_type='ticket', resource_id=ticket.id,
               detail={'noteId': note.id, 'doctorTicketId': doctor_ticket.id})
    logger.info('triage done for %s; token %s queued for %s',
                ticket.patient.mrn, ticket.token_number, doctor_queue.name)
    broadcast_queue_update(ticket.queue_id, ticket, 'served')
    broadcast_queue_update(doctor_queue.id, doctor_ticket, 'enqueued')
    return note, doctor_ticket
