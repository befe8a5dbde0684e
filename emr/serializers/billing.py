from decimal import Decimal

from rest_framework import serializers

from emr.models import Invoice, Payment


class InvoiceLineSerializer(serializers.Serializer):
    service_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    qty = serializers.IntegerField(min_value=1, required=False, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)

    def validate(self, attrs):
        if not attrs.get('service_id') and not (attrs.get('description') and 'unit_price' in attrs):
            raise serializers.ValidationError('a line needs a service_id or a description and unit_price')
        return attrs


class DiscountSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=['fixed', 'percent'])
    value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    code = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['type'] == 'percent' and attrs['value'] > 100:
            raise serializers.ValidationError({'value': 'percent discount cannot exceed 100'})
        return attrs


class InvoiceCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField()
    appointment_id = serializers.IntegerField(required=False, allow_null=True)
    kind = serializers.ChoiceField(choices=Invoice.KIND_CHOICES, required=False, default='general')
    lines = InvoiceLineSerializer(many=True, allow_empty=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=4, min_value=Decimal('0'),
                                        max_value=Decimal('1'), required=False, allow_null=True)
    discount = DiscountSerializer(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    draft = serializers.BooleanField(required=False, default=False)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False, default='cash')
    currency = serializers.CharField(max_length=8, required=False, allow_blank=True, default='')
    transaction_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RefundCreateSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField()


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


def serialize_invoice(inv: Invoice, with_payments: bool = False) -> dict:
    data = {
        'id': inv.id,
        'patientId': inv.patient_id,
        'appointmentId': inv.appointment_id,
        'status': inv.status,
        'kind': inv.kind,
        'lines': inv.lines,
        'subtotal': str(inv.subtotal),
        'discountAmount': str(inv.discount_amount),
        'discountCode': inv.discount_code,
        'taxAmount': str(inv.tax_amount),
        'totalAmount': str(inv.total_amount),
        'balanceDue': str(inv.balance_due),
        'issuedAt': inv.issued_at.isoformat() if inv.issued_at else None,
        'dueDate': inv.due_date.isoformat() if inv.due_date else None,
        'createdAt': inv.created_at.isoformat(),
    }
    if with_payments:
        data['payments'] = [serialize_payment(p) for p in inv.payments.all().order_by('received_at')]
    return data


def serialize_payment(p: Payment) -> dict:
    return {
        'id': p.id,
        'invoiceId': p.invoice_id,
        'amount': str(p.amount),
        'method': p.method,
        'currency': p.currency,
        'transactionRef': p.transaction_ref,
        'notes': p.notes,
        'receivedBy': p.received_by_id,
        'receivedAt': p.received_at.isoformat(),
        'refunded': str(sum((r.amount for r in p.refunds.all()), Decimal('0.00'))),
    }


def serialize_refund(r) -> dict:
    return {
        'id': r.id,
        'paymentId': r.payment_id,
        'amount': str(r.amount),
        'reason': r.reason,
        'approvedBy': r.approved_by_id,
        'processedAt': r.processed_at.isoformat() if r.processed_at else None,
    }
