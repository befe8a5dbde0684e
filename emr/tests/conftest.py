from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from emr.models import Clinic, Queue, Service, User, UserRole, Patient

PASSWORD = 'Str0ng!Passw0rd'
SIGNATURE = 'data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttles and the dashboard share the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(username, *roles, **extra):
        user = User.objects.create_user(username=username, password=PASSWORD, **extra)
        for role in roles:
            UserRole.objects.create(user=user, role=role)
        return user
    return _make


@pytest.fixture
def reception(make_user):
    return make_user('desk', 'reception', first_name='Front', email='desk@clinic.test')


@pytest.fixture
def clinician(make_user):
    return make_user('nurse', 'clinician', first_name='Nora', email='nurse@clinic.test')


@pytest.fixture
def cashier(make_user):
    return make_user('cashier', 'billing')


@pytest.fixture
def manager(make_user):
    return make_user('boss', 'manager')


@pytest.fixture
def admin_user(make_user):
    return make_user('root', 'admin')


@pytest.fixture
def clinic(db):
    return Clinic.objects.create(name='Main Clinic', code='MAIN')


@pytest.fixture
def reg_service(db):
    return Service.objects.create(code='REG-FEE', name='Registration fee', type='registration',
                                  unit_price=Decimal('50.00'))


@pytest.fixture
def consult_service(db):
    return Service.objects.create(code='CONSULT-GEN', name='General consultation', type='consultation',
                                  unit_price=Decimal('150.00'), tax_rate=Decimal('0.10'))


@pytest.fixture
def triage_queue(clinic):
    return Queue.objects.create(clinic=clinic, name='Triage', queue_type='triage', prefix='T', sla_minutes=30)


@pytest.fixture
def doctor_queue(clinic):
    return Queue.objects.create(clinic=clinic, name='General Practice', queue_type='doctor', prefix='D')


@pytest.fixture
def lab_queue(clinic):
    return Queue.objects.create(clinic=clinic, name='Laboratory', queue_type='lab', prefix='L')


@pytest.fixture
def patient_data():
    return {
        'first_name': 'Abebe',
        'last_name': 'Kebede',
        'date_of_birth': date(1990, 5, 17),
        'sex_at_birth': 'male',
        'phone_mobile': '+251911000000',
        'email': 'abebe@example.com',
    }


@pytest.fixture
def make_patient(db):
    counter = {'n': 0}

    def _make(**extra):
        counter['n'] += 1
        fields = {
            'mrn': f"TEST{counter['n']:06d}",
            'first_name': 'Patient',
            'last_name': f"No{counter['n']}",
            'date_of_birth': date(1985, 1, 1),
            'phone_mobile': f"+25190000{counter['n']:04d}",
        }
        fields.update(extra)
        return Patient.objects.create(**fields)
    return _make


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def signature():
    return SIGNATURE
