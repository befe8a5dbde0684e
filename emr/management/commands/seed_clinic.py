"""
Management command that creates a working demo clinic.

Safe to run repeatedly: existing rows are looked up by their natural
keys (clinic code, service code, queue name, username) and left alone.
"""
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from emr.models import Clinic, NotificationTemplate, Queue, Service, User, UserRole

SERVICES = [
    {'code': settings.CLINIC_REGISTRATION_SERVICE_CODE, 'name': 'Registration fee', 'type': 'registration',
     'unit_price': settings.CLINIC_REGISTRATION_FEE_FALLBACK},
    {'code': 'CONSULT-GEN', 'name': 'General consultation', 'type': 'consultation',
     'unit_price': Decimal('150.00'), 'tax_rate': settings.CLINIC_DEFAULT_TAX_RATE},
]

QUEUES = [
    ('Triage', 'triage', 'T'),
    ('General Practice', 'doctor', 'D'),
    ('Cashier', 'cashier', 'C'),
]

STAFF = [
    ('reception', 'reception', 'Front', 'Desk'),
    ('nurse', 'clinician', 'Triage', 'Nurse'),
    ('doctor', 'clinician', 'General', 'Practitioner'),
    ('cashier', 'billing', 'Main', 'Cashier'),
    ('manager', 'manager', 'Clinic', 'Manager'),
]

TEMPLATES = [
    ('appointment_reminder', 'sms', '', 'Dear {{first_name}}, this is a reminder of your appointment tomorrow.'),
    ('registration_complete', 'email', 'Welcome to the clinic',
     'Dear {{name}}, your registration is complete. Please wait for your number to be called.'),
]


class Command(BaseCommand):
    help = 'Create a demo clinic with services, queues, staff and notification templates'

    def add_arguments(self, parser):
        parser.add_argument('--code', default='MAIN', help='clinic code')
        parser.add_argument('--name', default='Main Clinic', help='clinic name')
        parser.add_argument('--password', default='Clinic#2024', help='password for newly created staff')

    @transaction.atomic
    def handle(self, *args, **options):
        clinic, created = Clinic.objects.get_or_create(code=options['code'], defaults={'name': options['name']})
        self._report('clinic', clinic.name, created)

        for data in SERVICES:
            data = dict(data)
            service, created = Service.objects.get_or_create(code=data.pop('code'), defaults=data)
            self._report('service', service.code, created)

        for name, queue_type, prefix in QUEUES:
            queue, created = Queue.objects.get_or_create(
                clinic=clinic, name=name,
                defaults={'queue_type': queue_type, 'prefix': prefix,
                          'sla_minutes': settings.CLINIC_DEFAULT_SLA_MINUTES},
            )
            self._report('queue', queue.name, created)

        for username, role, first, last in STAFF:
            user = User.objects.filter(username=username).first()
            created = user is None
            if created:
                user = User.objects.create_user(username=username, password=options['password'],
                                                first_name=first, last_name=last)
            UserRole.objects.get_or_create(user=user, role=role)
            self._report('user', f'{username} ({role})', created)

        for name, ntype, subject, body in TEMPLATES:
            _, created = NotificationTemplate.objects.get_or_create(
                name=name, defaults={'notification_type': ntype, 'subject': subject, 'body': body},
            )
            self._report('template', name, created)

        self.stdout.write(self.style.SUCCESS(f'Clinic {clinic.code} ready.'))

    def _report(self, kind, label, created):
        self.stdout.write(f"{'created' if created else 'exists '} {kind}: {label}")
