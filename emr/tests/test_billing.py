from decimal import Decimal

import pytest
from rest_framework.exceptions import ValidationError

from emr.exceptions import ConflictError
from emr.models import AuditEvent, Invoice
from emr.services.billing import (
    billing_stats,
    compute_totals,
    create_invoice,
    create_refund,
    issue_invoice,
    latest_invoice,
    record_payment,
    void_invoice,
)

pytestmark = pytest.mark.django_db


def test_compute_totals_with_percent_discount_and_tax():
    lines = [{'description': 'X-ray', 'qty': 2, 'unit_price': '100.00'},
             {'description': 'Dressing', 'qty': 1, 'unit_price': '25.50'}]
    t = compute_totals(lines, Decimal('0.10'), {'type': 'percent', 'value': '10'})
    assert t['subtotal'] == Decimal('225.50')
    assert t['discount_amount'] == Decimal('22.55')
    assert t['tax_amount'] == Decimal('20.30')
    assert t['total_amount'] == Decimal('223.25')
    assert t['lines'][0]['total'] == '200.00'


def test_fixed_discount_is_capped_at_subtotal():
    t = compute_totals([{'description': 'Visit', 'qty': 1, 'unit_price': '30'}], Decimal('0.10'),
                       {'type': 'fixed', 'value': '50'})
    assert t['discount_amount'] == Decimal('30.00')
    assert t['tax_amount'] == Decimal('0.00')
    assert t['total_amount'] == Decimal('0.00')


def test_create_invoice_from_service_uses_catalogue_price(make_patient, cashier, consult_service):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'service_id': consult_service.id, 'qty': 1}])
    assert inv.status == 'issued'
    assert inv.issued_at is not None
    assert inv.subtotal == Decimal('150.00')
    assert inv.tax_amount == Decimal('15.00')
    assert inv.total_amount == Decimal('165.00')
    assert inv.balance_due == inv.total_amount
    assert inv.lines[0]['code'] == 'CONSULT-GEN'
    assert AuditEvent.objects.filter(action='invoice_create', resource_id=str(inv.id)).exists()


def test_create_invoice_rejects_empty_and_bad_lines(make_patient, cashier):
    patient = make_patient()
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[])
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[{'description': 'Bad', 'qty': 0, 'unit_price': '5'}])
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[{'description': 'Bad', 'unit_price': '-1'}])
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[{'service_id': 999}])


def test_zero_quantity_is_rejected_not_billed_as_one(make_patient, cashier, consult_service):
    patient = make_patient()
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[{'service_id': consult_service.id, 'qty': 0}])
    with pytest.raises(ValidationError):
        create_invoice(cashier, patient, lines=[{'description': 'Lab', 'qty': 'two', 'unit_price': '5'}])
    with pytest.raises(ValidationError):
        compute_totals([{'description': 'Lab', 'qty': 0, 'unit_price': '5'}])
    assert not Invoice.objects.filter(patient=patient).exists()

    t = compute_totals([{'description': 'Lab', 'unit_price': '5'}])
    assert t['lines'][0]['qty'] == 1
    assert t['total_amount'] == Decimal('5.00')


def test_draft_invoice_must_be_issued_before_payment(make_patient, cashier):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'description': 'Lab', 'unit_price': '40'}], draft=True)
    assert inv.status == 'draft' and inv.issued_at is None
    with pytest.raises(ConflictError):
        record_payment(cashier, inv, amount='10')
    inv = issue_invoice(cashier, inv)
    assert inv.status == 'issued'
    with pytest.raises(ConflictError):
        issue_invoice(cashier, inv)


def test_partial_then_full_payment(make_patient, cashier):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'description': 'Lab', 'unit_price': '100'}], tax_rate=0)
    first = record_payment(cashier, inv, amount='40', method='cash')
    assert first['invoice'].status == 'partial'
    assert first['invoice'].balance_due == Decimal('60.00')
    assert first['payment'].currency == 'ETB'
    assert first['ticket'] is None
    second = record_payment(cashier, inv, amount='60', method='card')
    assert second['invoice'].status == 'paid'
    assert second['invoice'].balance_due == Decimal('0.00')
    patient.refresh_from_db()
    assert patient.payment_completed_at is not None


def test_payment_amount_bounds(make_patient, cashier):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'description': 'Lab', 'unit_price': '100'}], tax_rate=0)
    with pytest.raises(ValidationError):
        record_payment(cashier, inv, amount='0')
    with pytest.raises(ValidationError):
        record_payment(cashier, inv, amount='-5')
    with pytest.raises(ValidationError):
        record_payment(cashier, inv, amount='100.01')
    inv.refresh_from_db()
    assert inv.balance_due == Decimal('100.00')
    assert inv.payments.count() == 0


def test_paid_invoice_rejects_more_payments(make_patient, cashier):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'description': 'Lab', 'unit_price': '10'}], tax_rate=0)
    record_payment(cashier, inv, amount='10')
    with pytest.raises(ConflictError):
        record_payment(cashier, inv, amount='1')


def test_void_only_without_payments(make_patient, cashier):
    patient = make_patient()
    unpaid = create_invoice(cashier, patient, lines=[{'description': 'A', 'unit_price': '10'}])
    voided = void_invoice(cashier, unpaid, 'entered twice')
    assert voided.status == 'void'
    assert voided.balance_due == Decimal('0.00')
    with pytest.raises(ConflictError):
        void_invoice(cashier, voided)

    paid = create_invoice(cashier, patient, lines=[{'description': 'B', 'unit_price': '10'}], tax_rate=0)
    record_payment(cashier, paid, amount='5')
    with pytest.raises(ConflictError):
        void_invoice(cashier, paid)


def test_latest_invoice_skips_void(make_patient, cashier):
    patient = make_patient()
    older = create_invoice(cashier, patient, lines=[{'description': 'A', 'unit_price': '10'}])
    newer = create_invoice(cashier, patient, lines=[{'description': 'B', 'unit_price': '10'}])
    assert latest_invoice(patient) == newer
    void_invoice(cashier, newer)
    assert latest_invoice(patient) == older


def test_refunds_are_bounded_and_mark_invoice_refunded(make_patient, cashier):
    patient = make_patient()
    inv = create_invoice(cashier, patient, lines=[{'description': 'Scan', 'unit_price': '80'}], tax_rate=0)
    payment = record_payment(cashier, inv, amount='80')['payment']

    with pytest.raises(ValidationError):
        create_refund(cashier, payment, amount='0', reason='x')
    with pytest.raises(ValidationError):
        create_refund(cashier, payment, amount='10', reason='  ')

    create_refund(cashier, payment, amount='30', reason='partial service')
    inv.refresh_from_db()
    assert inv.status == 'paid'
    with pytest.raises(ValidationError):
        create_refund(cashier, payment, amount='50.01', reason='too much')

    create_refund(cashier, payment, amount='50', reason='rest of it')
    inv.refresh_from_db()
    assert inv.status == 'refunded'
    # balance is not reopened by refunds
    assert inv.balance_due == Decimal('0.00')


def test_billing_stats(make_patient, cashier):
    patient = make_patient()
    a = create_invoice(cashier, patient, lines=[{'description': 'A', 'unit_price': '100'}], tax_rate=0)
    create_invoice(cashier, patient, lines=[{'description': 'B', 'unit_price': '30'}], tax_rate=0)
    record_payment(cashier, a, amount='100')
    stats = billing_stats()
    assert stats['revenueToday'] == '100.00'
    assert stats['revenueMonth'] == '100.00'
    assert stats['outstanding'] == '30.00'
    assert stats['invoicesByStatus']['paid'] == 1
    assert stats['invoicesByStatus']['issued'] == 1
    assert Invoice.objects.count() == 2
