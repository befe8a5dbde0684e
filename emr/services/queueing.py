"""
Ticket queues.

Tickets move through ``waiting -> called -> served`` with ``no_show``
and ``transferred`` as the other terminal states.  Every change writes a
:class:`TicketTransition` row, an audit event, and pushes a
``queue.update`` event to the Channels groups once the transaction
commits.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models import Case, Count, IntegerField, Value, When
from django.utils import timezone
from rest_framework.exceptions import NotFound

from emr.exceptions import ConflictError, PaymentRequired
from emr.models import Patient, Queue, Ticket, TicketTransition
from emr.services.audit import log_action
from emr.services.billing import latest_invoice
from emr.services.sequences import generate_ticket_token

logger = logging.getLogger('emr.queueing')

BOARD_GROUP = 'queues'
DISPLAY_NEXT = 5

# vip first, then stat, then routine
PRIORITY_RANK = Case(
    When(priority='vip', then=Value(0)),
    When(priority='stat', then=Value(1)),
    default=Value(2),
    output_field=IntegerField(),
)


def _can_transition(current: str, new: str) -> bool:
    """Return True if a ticket may move from ``current`` to ``new``."""
    transitions = {
        'waiting': ['called', 'served', 'no_show', 'transferred'],
        'called': ['served', 'no_show', 'waiting', 'transferred'],
        'served': [],
        'no_show': [],
        'transferred': [],
    }
    return new in transitions.get(current, [])


def queue_group(queue_id: int) -> str:
    return f"queue.{queue_id}"


def serialize_ticket(t: Ticket) -> dict:
    return {
        'id': t.id,
        'queueId': t.queue_id,
        'queueName': t.queue.name,
        'patientId': t.patient_id,
        'patientName': t.patient.full_name,
        'mrn': t.patient.mrn,
        'tokenNumber': t.token_number,
        'status': t.status,
        'priority': t.priority,
        'notes': t.notes,
        'createdAt': t.created_at.isoformat(),
        'calledAt': t.called_at.isoformat() if t.called_at else None,
        'servedAt': t.served_at.isoformat() if t.served_at else None,
        'servedBy': t.served_by_id,
        'transferredTo': t.transferred_to_id,
    }


def broadcast_queue_update(queue_id: int, ticket: Optional[Ticket] = None, action: str = 'changed') -> None:
    """Schedule a ``queue.update`` event for after the current transaction commits."""
    payload = {
        'type': 'queue.update',
        'queueId': queue_id,
        'action': action,
        'ticketId': ticket.id if ticket else None,
        'tokenNumber': ticket.token_number if ticket else None,
        'status': ticket.status if ticket else None,
        'ts': timezone.now().isoformat(),
    }

    def _send():
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        async_to_sync(channel_layer.group_send)(BOARD_GROUP, payload)
        async_to_sync(channel_layer.group_send)(queue_group(queue_id), payload)

    transaction.on_commit(_send)


def record_transition(ticket: Ticket, from_status: Optional[str], operator, reason: str) -> None:
    TicketTransition.objects.create(
        ticket=ticket,
        from_status=from_status,
        to_status=ticket.status,
        operator=operator if getattr(operator, 'pk', None) else None,
        reason=reason,
    )
    log_action(user=operator, action='ticket_transition', resource_type='ticket', resource_id=ticket.id,
               detail={'from': from_status, 'to': ticket.status, 'token': ticket.token_number,
                       'reason': reason})


def check_payment_gate(patient: Patient, queue: Queue) -> None:
    """Raise ``PaymentRequired`` unless the patient may join ``queue``."""
    if queue.queue_type not in Queue.PAYMENT_GATED_TYPES:
        return
    invoice = latest_invoice(patient)
    if invoice is None:
        if patient.appointments.filter(scheduled_start__lt=timezone.now()).exists():
            msg = 'Returning patient has no consultation fee invoice. Create and settle one before queueing.'
        else:
            msg = 'Registration fee must be paid before the patient can be queued.'
        logger.warning('payment gate rejected patient %s for queue %s: no invoice', patient.mrn, queue.id)
        raise PaymentRequired(msg)
    if invoice.status != 'paid':
        logger.warning('payment gate rejected patient %s for queue %s: invoice %s is %s',
                       patient.mrn, queue.id, invoice.id, invoice.status)
        raise PaymentRequired(
            f'Latest invoice #{invoice.id} is {invoice.status} (balance {invoice.balance_due}). '
            'Settle it before queueing.'
        )


@transaction.atomic
def enqueue_patient(operator, patient: Patient, queue: Queue, *, priority: str = 'routine',
                    notes: str = '', token: Optional[str] = None, appointment=None,
                    skip_payment_gate: bool = False) -> Ticket:
    # lock the patient row so two desks cannot queue the same patient twice
    patient = Patient.objects.select_for_update().get(id=patient.id)
    if not queue.is_active:
        raise ConflictError(f'queue {queue.name} is not active')
    existing = Ticket.objects.filter(patient=patient, status__in=Ticket.ACTIVE_STATUSES).select_related('queue').first()
    if existing:
        raise ConflictError(
            f'patient already holds active ticket {existing.token_number} in {existing.queue.name}'
        )
    if not skip_payment_gate:
        check_payment_gate(patient, queue)

    ticket = Ticket.objects.create(
        queue=queue,
        patient=patient,
        appointment=appointment,
        token_number=token or generate_ticket_token(queue.prefix),
        status='waiting',
        priority=priority,
        notes=notes,
    )
    record_transition(ticket, None, operator, notes or 'enqueued')
    logger.info('ticket %s issued to patient %s in queue %s', ticket.token_number, patient.mrn, queue.name)
    broadcast_queue_update(queue.id, ticket, 'enqueued')
    return ticket


@transaction.atomic
def change_ticket_status(operator, ticket: Ticket, new_status: str, reason: str = '') -> Ticket:
    ticket = Ticket.objects.select_for_update().select_related('queue', 'patient').get(id=ticket.id)
    old_status = ticket.status
    if not _can_transition(old_status, new_status):
        raise ConflictError(f'cannot move ticket from {old_status} to {new_status}')
    now = timezone.now()
    ticket.status = new_status
    if new_status == 'called':
        ticket.called_at = now
    if new_status == 'served':
        ticket.served_at = now
        ticket.served_by = operator if getattr(operator, 'pk', None) else None
    ticket.save()
    record_transition(ticket, old_status, operator, reason or 'status update')
    broadcast_queue_update(ticket.queue_id, ticket, new_status)
    return ticket


def waiting_tickets(queue: Queue):
    return (
        queue.tickets.filter(status='waiting')
        .select_related('queue', 'patient')
        .annotate(priority_rank=PRIORITY_RANK)
        .order_by('priority_rank', 'created_at', 'id')
    )


@transaction.atomic
def call_next(operator, queue: Queue) -> Ticket:
    ticket = waiting_tickets(queue).select_for_update(of=('self',)).first()
    if ticket is None:
        raise NotFound('no tickets waiting')
    return change_ticket_status(operator, ticket, 'called', 'called next')


@transaction.atomic
def transfer_ticket(operator, ticket: Ticket, target_queue: Queue, notes: str = '') -> Ticket:
    """Close ``ticket`` as transferred and open a waiting one in ``target_queue``.

    The new ticket keeps the token and priority.  The payment gate is not
    applied again because the patient already passed it.
    """
    ticket = Ticket.objects.select_for_update().select_related('queue', 'patient').get(id=ticket.id)
    if target_queue.id == ticket.queue_id:
        raise ConflictError('ticket is already in that queue')
    if not _can_transition(ticket.status, 'transferred'):
        raise ConflictError(f'cannot transfer a ticket in status {ticket.status}')
    if not target_queue.is_active:
        raise ConflictError(f'queue {target_queue.name} is not active')

    old_status = ticket.status
    ticket.status = 'transferred'
    ticket.save(update_fields=['status', 'updated_at'])
    record_transition(ticket, old_status, operator, f'transferred to {target_queue.name}')

    new_ticket = Ticket.objects.create(
        queue=target_queue,
        patient=ticket.patient,
        appointment=ticket.appointment,
        token_number=ticket.token_number,
        status='waiting',
        priority=ticket.priority,
        notes=notes,
    )
    record_transition(new_ticket, None, operator, f'transferred from {ticket.queue.name}')
    ticket.transferred_to = new_ticket
    ticket.save(update_fields=['transferred_to', 'updated_at'])
    logger.info('ticket %s transferred from %s to %s', ticket.token_number, ticket.queue.name, target_queue.name)
    broadcast_queue_update(ticket.queue_id, ticket, 'transferred')
    broadcast_queue_update(target_queue.id, new_ticket, 'enqueued')
    return new_ticket


def queue_stats(queue: Queue) -> dict:
    counts = {s: 0 for s, _ in Ticket.STATUS_CHOICES}
    for row in queue.tickets.values('status').annotate(n=Count('id')):
        counts[row['status']] = row['n']

    now = timezone.now()
    day_start = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    waits = [
        (served - created).total_seconds() / 60
        for created, served in queue.tickets.filter(status='served', served_at__gte=day_start)
        .values_list('created_at', 'served_at')
    ]
    avg_wait = round(sum(waits) / len(waits), 1) if waits else 0

    breaches = 0
    if queue.sla_minutes:
        cutoff = now - timedelta(minutes=queue.sla_minutes)
        breaches = queue.tickets.filter(status='waiting', created_at__lt=cutoff).count()
    return {
        'queueId': queue.id,
        'name': queue.name,
        'counts': counts,
        'servedToday': len(waits),
        'avgWaitMinutes': avg_wait,
        'slaMinutes': queue.sla_minutes,
        'slaBreaches': breaches,
    }


def display_board() -> list[dict]:
    board = []
    for q in Queue.objects.filter(is_active=True).order_by('name', 'id'):
        called = q.tickets.filter(status='called').order_by('-called_at')
        board.append({
            'queueId': q.id,
            'name': q.name,
            'queueType': q.queue_type,
            'nowServing': [t.token_number for t in called],
            'next': [t.token_number for t in waiting_tickets(q)[:DISPLAY_NEXT]],
        })
    return board
