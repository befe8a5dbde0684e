"""
Invoices, payments and refunds.

All amounts are ``Decimal`` quantized to cents with ``ROUND_HALF_UP``.
Every write that reads a balance first locks the invoice row so
concurrent cashiers cannot both spend the same balance.
"""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from emr.exceptions import ConflictError
from emr.models import Invoice, Patient, Payment, Refund, Service, ZERO
from emr.services.audit import log_action

logger = logging.getLogger('emr.billing')

CENT = Decimal('0.01')


def money(value) -> Decimal:
    if value is None or value == '':
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _line_qty(line: dict) -> int:
    qty = line.get('qty')
    if qty is None or qty == '':
        return 1
    try:
        qty = int(qty)
    except (TypeError, ValueError):
        raise ValidationError({'lines': f'invalid quantity {qty!r}'})
    if qty < 1:
        raise ValidationError({'lines': 'quantity must be at least 1'})
    return qty


def compute_totals(lines: list[dict], tax_rate=ZERO, discount: Optional[dict] = None) -> dict:
    """Return subtotal, discount, tax and total for ``lines``.

    ``discount`` is ``{'type': 'fixed'|'percent', 'value': ...}``; it is
    capped at the subtotal so the total never goes negative.
    """
    subtotal = ZERO
    priced = []
    for line in lines:
        qty = _line_qty(line)
        unit_price = money(line.get('unit_price'))
        line_total = money(qty * unit_price)
        subtotal += line_total
        priced.append({**line, 'qty': qty, 'unit_price': str(unit_price), 'total': str(line_total)})
    subtotal = money(subtotal)

    discount_amount = ZERO
    if discount and discount.get('value') not in (None, ''):
        value = Decimal(str(discount['value']))
        if discount.get('type') == 'percent':
            discount_amount = money(subtotal * value / Decimal('100'))
        else:
            discount_amount = money(value)
    discount_amount = min(max(discount_amount, ZERO), subtotal)

    tax_amount = money((subtotal - discount_amount) * Decimal(str(tax_rate or 0)))
    total = money(subtotal - discount_amount + tax_amount)
    return {
        'lines': priced,
        'subtotal': subtotal,
        'discount_amount': discount_amount,
        'tax_amount': tax_amount,
        'total_amount': total,
    }


def _resolve_lines(raw_lines: list[dict]) -> list[dict]:
    if not raw_lines:
        raise ValidationError({'lines': 'at least one line is required'})
    lines = []
    for raw in raw_lines:
        qty = _line_qty(raw)
        service_id = raw.get('service_id')
        if service_id:
            service = Service.objects.filter(id=service_id, is_active=True).first()
            if not service:
                raise ValidationError({'lines': f'service {service_id} not found'})
            lines.append({
                'service_id': service.id,
                'code': service.code,
                'description': raw.get('description') or service.name,
                'qty': qty,
                'unit_price': service.unit_price,
            })
            continue
        description = (raw.get('description') or '').strip()
        if not description:
            raise ValidationError({'lines': 'free lines need a description'})
        unit_price = money(raw.get('unit_price'))
        if unit_price < ZERO:
            raise ValidationError({'lines': 'unit price cannot be negative'})
        lines.append({'description': description, 'qty': qty, 'unit_price': unit_price})
    return lines


@transaction.atomic
def create_invoice(operator, patient: Patient, *, lines: list[dict], kind: str = 'general',
                   tax_rate=None, discount: Optional[dict] = None, appointment=None,
                   due_date=None, draft: bool = False) -> Invoice:
    resolved = _resolve_lines(lines)
    if tax_rate is None:
        tax_rate = settings.CLINIC_DEFAULT_TAX_RATE
    totals = compute_totals(resolved, tax_rate, discount)
    now = timezone.now()
    invoice = Invoice.objects.create(
        patient=patient,
        appointment=appointment,
        kind=kind,
        status='draft' if draft else 'issued',
        lines=totals['lines'],
        subtotal=totals['subtotal'],
        discount_amount=totals['discount_amount'],
        discount_code=(discount or {}).get('code') or '',
        tax_amount=totals['tax_amount'],
        total_amount=totals['total_amount'],
        balance_due=totals['total_amount'],
        issued_at=None if draft else now,
        due_date=due_date,
        created_by=operator,
    )
    log_action(user=operator, action='invoice_create', resource_type='invoice', resource_id=invoice.id,
               detail={'patientId': patient.id, 'kind': kind, 'total': str(invoice.total_amount)})
    logger.info('invoice %s created for patient %s total=%s', invoice.id, patient.mrn, invoice.total_amount)
    return invoice


def create_registration_invoice(operator, patient: Patient) -> Invoice:
    service = Service.objects.filter(code=settings.CLINIC_REGISTRATION_SERVICE_CODE, is_active=True).first()
    if service:
        line = {'service_id': service.id}
    else:
        logger.warning('registration service %s missing; using fallback fee %s',
                       settings.CLINIC_REGISTRATION_SERVICE_CODE, settings.CLINIC_REGISTRATION_FEE_FALLBACK)
        line = {'description': 'Registration fee', 'unit_price': settings.CLINIC_REGISTRATION_FEE_FALLBACK}
    return create_invoice(operator, patient, lines=[line], kind='registration', tax_rate=ZERO,
                          due_date=timezone.localdate())


@transaction.atomic
def issue_invoice(operator, invoice: Invoice) -> Invoice:
    invoice = Invoice.objects.select_for_update().get(id=invoice.id)
    if invoice.status != 'draft':
        raise ConflictError(f'cannot issue an invoice in status {invoice.status}')
    invoice.status = 'issued'
    invoice.issued_at = timezone.now()
    invoice.save(update_fields=['status', 'issued_at', 'updated_at'])
    log_action(user=operator, action='invoice_issue', resource_type='invoice', resource_id=invoice.id)
    return invoice


@transaction.atomic
def void_invoice(operator, invoice: Invoice, reason: str = '') -> Invoice:
    invoice = Invoice.objects.select_for_update().get(id=invoice.id)
    if invoice.status == 'void':
        raise ConflictError('invoice is already void')
    if invoice.payments.exists():
        raise ConflictError('cannot void an invoice with payments; refund instead')
    invoice.status = 'void'
    invoice.balance_due = ZERO
    invoice.save(update_fields=['status', 'balance_due', 'updated_at'])
    log_action(user=operator, action='invoice_void', resource_type='invoice', resource_id=invoice.id,
               detail={'reason': reason})
    logger.info('invoice %s voided', invoice.id)
    return invoice


def latest_invoice(patient: Patient) -> Optional[Invoice]:
    """The patient's most recent invoice that has not been voided."""
    return (
        Invoice.objects.filter(patient=patient)
        .exclude(status='void')
        .order_by('-created_at', '-id')
        .first()
    )


@transaction.atomic
def record_payment(operator, invoice: Invoice, *, amount, method: str = 'cash', currency: str = '',
                   transaction_ref: str = '', notes: str = '') -> dict:
    """Record a payment against ``invoice``.

    Returns ``{'payment', 'invoice', 'ticket'}``.  ``ticket`` is set when
    settling the invoice admitted the patient to the triage queue.
    """
    invoice = Invoice.objects.select_for_update().select_related('patient').get(id=invoice.id)
    if invoice.status not in Invoice.OPEN_STATUSES:
        raise ConflictError(f'cannot record a payment on an invoice in status {invoice.status}')
    amount = money(amount)
    if amount <= ZERO:
        raise ValidationError({'amount': 'amount must be positive'})
    if amount > invoice.balance_due:
        raise ValidationError({'amount': f'amount exceeds balance due ({invoice.balance_due})'})

    payment = Payment.objects.create(
        invoice=invoice,
        amount=amount,
        method=method,
        currency=currency or settings.CLINIC_CURRENCY,
        transaction_ref=transaction_ref,
        notes=notes,
        received_by=operator,
    )
    invoice.balance_due = money(invoice.balance_due - amount)
    invoice.status = 'paid' if invoice.balance_due == ZERO else 'partial'
    invoice.save(update_fields=['balance_due', 'status', 'updated_at'])
    log_action(user=operator, action='payment_record', resource_type='invoice', resource_id=invoice.id,
               detail={'paymentId': payment.id, 'amount': str(amount), 'method': method,
                       'status': invoice.status})
    logger.info('payment %s of %s recorded on invoice %s (status=%s)',
                payment.id, amount, invoice.id, invoice.status)

    ticket = None
    if invoice.status == 'paid':
        from emr.services.patient_flow import admit_to_triage_if_ready

        patient = Patient.objects.select_for_update().get(id=invoice.patient_id)
        if patient.payment_completed_at is None:
            patient.payment_completed_at = timezone.now()
            patient.save(update_fields=['payment_completed_at', 'updated_at'])
        ticket = admit_to_triage_if_ready(operator, patient)
    return {'payment': payment, 'invoice': invoice, 'ticket': ticket}


@transaction.atomic
def create_refund(operator, payment: Payment, *, amount, reason: str) -> Refund:
    payment = Payment.objects.select_for_update().select_related('invoice').get(id=payment.id)
    invoice = Invoice.objects.select_for_update().get(id=payment.invoice_id)
    if not (reason or '').strip():
        raise ValidationError({'reason': 'a reason is required'})
    amount = money(amount)
    already = money(payment.refunds.aggregate(s=Sum('amount'))['s'])
    if amount <= ZERO:
        raise ValidationError({'amount': 'amount must be positive'})
    if amount > payment.amount - already:
        raise ValidationError({'amount': f'amount exceeds refundable balance ({payment.amount - already})'})

    refund = Refund.objects.create(
        payment=payment, amount=amount, reason=reason.strip(),
        approved_by=operator, processed_at=timezone.now(),
    )
    paid_total = money(invoice.payments.aggregate(s=Sum('amount'))['s'])
    refunded_total = money(Refund.objects.filter(payment__invoice=invoice).aggregate(s=Sum('amount'))['s'])
    if paid_total > ZERO and refunded_total >= paid_total:
        invoice.status = 'refunded'
        invoice.save(update_fields=['status', 'updated_at'])
    log_action(user=operator, action='refund_create', resource_type='payment', resource_id=payment.id,
               detail={'refundId': refund.id, 'amount': str(amount), 'invoiceId': invoice.id})
    logger.info('refund %s of %s on payment %s', refund.id, amount, payment.id)
    return refund


def billing_stats() -> dict:
    today = timezone.localdate()
    now = timezone.localtime()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = day_start.replace(day=1)

    payments = Payment.objects.all()
    refunds = Refund.objects.all()
    revenue_today = money(payments.filter(received_at__gte=day_start).aggregate(s=Sum('amount'))['s'])
    revenue_month = money(payments.filter(received_at__gte=month_start).aggregate(s=Sum('amount'))['s'])
    refunds_month = money(refunds.filter(created_at__gte=month_start).aggregate(s=Sum('amount'))['s'])
    outstanding = money(
        Invoice.objects.filter(status__in=Invoice.OPEN_STATUSES).aggregate(s=Sum('balance_due'))['s']
    )
    by_status = {s: 0 for s, _ in Invoice.STATUS_CHOICES}
    for row in Invoice.objects.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    overdue = Invoice.objects.filter(status__in=Invoice.OPEN_STATUSES, due_date__lt=today).count()
    return {
        'revenueToday': str(revenue_today),
        'revenueMonth': str(revenue_month),
        'refundsMonth': str(refunds_month),
        'outstanding': str(outstanding),
        'overdueCount': overdue,
        'invoicesByStatus': by_status,
        'currency': settings.CLINIC_CURRENCY,
    }
