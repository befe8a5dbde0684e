"""
Queue and ticket endpoints.

Front desk and clinicians enqueue patients, call the next ticket and
move tickets through their states.  The display board is public so
waiting-room screens can poll it without an account; the same updates
are pushed over the ``ws/queues/`` websocket.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Patient, Queue, Ticket
from ..permissions import IsFrontDesk, IsStaff
from ..serializers.queue import EnqueueSerializer, TicketStatusSerializer, TransferSerializer
from ..services.queueing import (
    call_next,
    change_ticket_status,
    display_board,
    enqueue_patient,
    queue_stats,
    serialize_ticket,
    transfer_ticket,
    waiting_tickets,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def queue_tickets(request, queue_id: int):
    """Tickets in a queue.  Defaults to active tickets in call order."""
    queue = get_object_or_404(Queue, id=queue_id)
    status_filter = request.query_params.get('status')
    if status_filter == 'all':
        qs = queue.tickets.select_related('queue', 'patient').order_by('-created_at')[:200]
    elif status_filter:
        qs = queue.tickets.select_related('queue', 'patient').filter(status=status_filter).order_by('created_at')
    else:
        called = queue.tickets.select_related('queue', 'patient').filter(status='called').order_by('called_at')
        qs = list(called) + list(waiting_tickets(queue))
    return Response({'ok': True, 'data': [serialize_ticket(t) for t in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def queue_call_next(request, queue_id: int):
    queue = get_object_or_404(Queue, id=queue_id)
    ticket = call_next(request.user, queue)
    return Response({'ok': True, 'data': serialize_ticket(ticket)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def tickets(request):
    """Manually put a patient in a queue, subject to the payment gate."""
    s = EnqueueSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ticket = enqueue_patient(
        request.user,
        get_object_or_404(Patient, id=vd['patient_id']),
        get_object_or_404(Queue, id=vd['queue_id']),
        priority=vd['priority'],
        notes=vd['notes'],
        appointment=get_object_or_404(Appointment, id=vd['appointment_id']) if vd.get('appointment_id') else None,
    )
    return Response({'ok': True, 'data': serialize_ticket(ticket)}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def ticket_status(request, ticket_id: int):
    ticket = get_object_or_404(Ticket, id=ticket_id)
    s = TicketStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ticket = change_ticket_status(request.user, ticket, s.validated_data['status'], s.validated_data['reason'])
    return Response({'ok': True, 'data': serialize_ticket(ticket)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def ticket_transfer(request, ticket_id: int):
    ticket = get_object_or_404(Ticket, id=ticket_id)
    s = TransferSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    target = get_object_or_404(Queue, id=s.validated_data['target_queue_id'])
    new_ticket = transfer_ticket(request.user, ticket, target, s.validated_data['notes'])
    return Response({'ok': True, 'data': serialize_ticket(new_ticket), 'previousId': ticket.id}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def queue_stats_view(request, queue_id: int):
    queue = get_object_or_404(Queue, id=queue_id)
    return Response({'ok': True, 'data': queue_stats(queue)})


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_display(request):
    return Response({'ok': True, 'data': display_board()})

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
queue_display.cls.throttle_scope = 'display'
