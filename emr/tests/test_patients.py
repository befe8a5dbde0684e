from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from emr.models import Clinic, NotificationTemplate, Queue, Service, User
from emr.services.patients import (
    incomplete_registrations,
    register_patient,
    search_patients,
    update_patient,
)

pytestmark = pytest.mark.django_db


def test_register_assigns_mrn_and_registration_invoice(reception, patient_data, reg_service):
    patient, invoice = register_patient(reception, patient_data)
    year = timezone.localdate().year
    assert patient.mrn == f'MRN{year}000001'
    assert patient.registration_status == 'pending'
    assert patient.created_by == reception
    assert invoice.kind == 'registration'
    assert invoice.status == 'issued'
    assert invoice.total_amount == Decimal('50.00')
    assert invoice.tax_amount == Decimal('0.00')

    second, _ = register_patient(reception, {**patient_data, 'first_name': 'Sara'})
    assert second.mrn == f'MRN{year}000002'


def test_registration_fee_fallback_without_service(reception, patient_data, settings):
    settings.CLINIC_REGISTRATION_FEE_FALLBACK = Decimal('75.00')
    _, invoice = register_patient(reception, patient_data)
    assert invoice.total_amount == Decimal('75.00')
    assert invoice.lines[0]['description'] == 'Registration fee'


def test_register_strips_markup(reception, patient_data, reg_service):
    patient, _ = register_patient(reception, {**patient_data, 'first_name': '<img src=x>Abebe',
                                              'mrn': 'HACKED'})
    assert patient.first_name == 'Abebe'
    assert patient.mrn.startswith('MRN')


def test_update_patient_only_touches_editable_fields(reception, make_patient):
    patient = make_patient()
    update_patient(reception, patient, {'city': 'Addis Ababa', 'registration_status': 'completed'})
    patient.refresh_from_db()
    assert patient.city == 'Addis Ababa'
    assert patient.registration_status == 'pending'


def test_search_and_paging(make_patient):
    make_patient(first_name='Tigist', last_name='Alemu')
    make_patient(first_name='Dawit', last_name='Alemu')
    for _ in range(3):
        make_patient()

    found, total = search_patients('alemu')
    assert total == 2
    assert {p.first_name for p in found} == {'Tigist', 'Dawit'}

    found, total = search_patients('TEST000003')
    assert total == 1

    page, total = search_patients(page=2, page_size=2)
    assert total == 5
    assert len(page) == 2

    found, total = search_patients(registration_status='completed')
    assert total == 0


def test_incomplete_registrations(make_patient):
    a = make_patient()
    make_patient(registration_status='completed')
    assert list(incomplete_registrations()) == [a]


def test_seed_clinic_is_idempotent():
    out = StringIO()
    call_command('seed_clinic', stdout=out)
    call_command('seed_clinic', stdout=out)
    assert Clinic.objects.filter(code='MAIN').count() == 1
    assert Service.objects.filter(code='REG-FEE').exists()
    assert set(Queue.objects.values_list('queue_type', flat=True)) == {'triage', 'doctor', 'cashier'}
    assert NotificationTemplate.objects.count() == 2
    nurse = User.objects.get(username='nurse')
    assert nurse.role_names() == {'clinician'}
    assert 'Clinic MAIN ready.' in out.getvalue()


def test_ensure_test_users_resets_passwords():
    call_command('ensure_test_users', password='First#Pass1', stdout=StringIO())
    user = User.objects.get(username='billing1')
    user.is_active = False
    user.save()
    call_command('ensure_test_users', password='Second#Pass2', stdout=StringIO())
    user.refresh_from_db()
    assert user.is_active
    assert user.check_password('Second#Pass2')
    assert User.objects.get(username='admin1').role_names() == {'admin'}
