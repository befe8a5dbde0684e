"""
Invoices, payments and refunds.

Recording a payment that settles a registration invoice may admit the
patient to the triage queue; the response then carries the ticket.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Invoice, Patient, Payment, Refund
from ..permissions import IsBilling, IsBillingManager, IsCashier
from ..serializers.billing import (
    InvoiceCreateSerializer,
    PaymentCreateSerializer,
    RefundCreateSerializer,
    VoidSerializer,
    serialize_invoice,
    serialize_payment,
    serialize_refund,
)
from ..services.billing import (
    billing_stats,
    create_invoice,
    create_refund,
    issue_invoice,
    record_payment,
    void_invoice,
)
from ..services.queueing import serialize_ticket


def _page(request, default_size=50):
    try:
        page = max(1, int(request.query_params.get('page') or 1))
        size = min(200, max(1, int(request.query_params.get('pageSize') or default_size)))
    except (TypeError, ValueError):
        page, size = 1, default_size
    return page, size


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBilling])
def invoices(request):
    if request.method == 'POST':
        s = InvoiceCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        invoice = create_invoice(
            request.user,
            get_object_or_404(Patient, id=vd['patient_id']),
            lines=[dict(line) for line in vd['lines']],
            kind=vd['kind'],
            tax_rate=vd.get('tax_rate'),
            discount=dict(vd['discount']) if vd.get('discount') else None,
            appointment=get_object_or_404(Appointment, id=vd['appointment_id']) if vd.get('appointment_id') else None,
            due_date=vd.get('due_date'),
            draft=vd['draft'],
        )
        return Response({'ok': True, 'data': serialize_invoice(invoice)}, status=201)

    qs = Invoice.objects.all()
    p = request.query_params
    if p.get('patient'):
        qs = qs.filter(patient_id=p['patient'])
    if p.get('status'):
        qs = qs.filter(status=p['status'])
    total = qs.count()
    page, size = _page(request)
    start = (page - 1) * size
    items = qs.order_by('-created_at', '-id')[start:start + size]
    return Response({
        'ok': True,
        'data': [serialize_invoice(i) for i in items],
        'pagination': {'total': total, 'page': page, 'pageSize': size},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBilling])
def invoice_detail(request, invoice_id: int):
    invoice = get_object_or_404(Invoice, id=invoice_id)
    return Response({'ok': True, 'data': serialize_invoice(invoice, with_payments=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCashier])
def invoice_issue(request, invoice_id: int):
    invoice = issue_invoice(request.user, get_object_or_404(Invoice, id=invoice_id))
    return Response({'ok': True, 'data': serialize_invoice(invoice)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBillingManager])
def invoice_void(request, invoice_id: int):
    s = VoidSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    invoice = void_invoice(request.user, get_object_or_404(Invoice, id=invoice_id), s.validated_data['reason'])
    return Response({'ok': True, 'data': serialize_invoice(invoice)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCashier])
def invoice_payments(request, invoice_id: int):
    invoice = get_object_or_404(Invoice, id=invoice_id)
    s = PaymentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = record_payment(request.user, invoice, **s.validated_data)
    ticket = result['ticket']
    return Response({
        'ok': True,
        'payment': serialize_payment(result['payment']),
        'invoice': serialize_invoice(result['invoice']),
        'ticket': serialize_ticket(ticket) if ticket else None,
    }, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBillingManager])
def payments(request):
    qs = Payment.objects.prefetch_related('refunds')
    p = request.query_params
    if p.get('invoice'):
        qs = qs.filter(invoice_id=p['invoice'])
    if p.get('method'):
        qs = qs.filter(method=p['method'])
    if p.get('date'):
        qs = qs.filter(received_at__date=p['date'])
    total = qs.count()
    page, size = _page(request)
    start = (page - 1) * size
    items = qs.order_by('-received_at', '-id')[start:start + size]
    return Response({
        'ok': True,
        'data': [serialize_payment(x) for x in items],
        'pagination': {'total': total, 'page': page, 'pageSize': size},
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBillingManager])
def refunds(request):
    if request.method == 'POST':
        s = RefundCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        payment = get_object_or_404(Payment, id=vd['payment_id'])
        refund = create_refund(request.user, payment, amount=vd['amount'], reason=vd['reason'])
        return Response({'ok': True, 'data': serialize_refund(refund)}, status=201)
    qs = Refund.objects.order_by('-created_at', '-id')
    if request.query_params.get('payment'):
        qs = qs.filter(payment_id=request.query_params['payment'])
    return Response({'ok': True, 'data': [serialize_refund(r) for r in qs[:200]]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBillingManager])
def stats(request):
    return Response({'ok': True, 'data': billing_stats()})
