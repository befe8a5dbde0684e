import pytest
from django.core import mail
from rest_framework.exceptions import NotFound, ValidationError

from emr.models import NotificationTemplate
from emr.services import notifications
from emr.services.notifications import send_notification

pytestmark = pytest.mark.django_db


def test_email_to_role_is_personalized(reception, make_user):
    make_user('desk2', 'reception', first_name='Selam', email='selam@clinic.test')
    make_user('nomail', 'reception')
    logs = send_notification(reception, recipient_type='role', role='reception', notification_type='email',
                             subject='Shift', body='Hi {{first_name}}, the shift starts at 8.')
    by_status = {log.metadata['email']: log.status for log in logs}
    assert by_status['desk@clinic.test'] == 'sent'
    assert by_status['selam@clinic.test'] == 'sent'
    assert by_status[''] == 'failed'
    assert len(mail.outbox) == 2
    bodies = sorted(m.body for m in mail.outbox)
    assert bodies == ['Hi Front, the shift starts at 8.', 'Hi Selam, the shift starts at 8.']


def test_email_failure_is_recorded(monkeypatch, reception, make_patient):
    patient = make_patient(email='p@example.com')

    def _fail(*args, **kwargs):
        raise OSError('smtp down')

    monkeypatch.setattr(notifications, 'send_mail', _fail)
    [log] = send_notification(reception, recipient_type='patient', recipient_ids=[patient.id],
                              notification_type='email', body='Your results are ready')
    assert log.status == 'failed'
    assert log.error_message == 'smtp down'
    assert log.sent_at is None


def test_sms_is_marked_sent(reception, make_patient):
    patient = make_patient()
    [log] = send_notification(reception, recipient_type='patient', recipient_ids=[patient.id],
                              notification_type='sms', body='Dear {{name}}, see you tomorrow')
    assert log.status == 'sent'
    assert log.body == f'Dear {patient.full_name}, see you tomorrow'
    assert log.metadata['phone'] == patient.phone_mobile


def test_template_fills_subject_and_body(reception, clinician):
    tpl = NotificationTemplate.objects.create(name='reminder', notification_type='internal',
                                              subject='Reminder', body='Hello {{first_name}}')
    [log] = send_notification(reception, recipient_type='user', recipient_ids=[clinician.id],
                              notification_type='internal', template_id=tpl.id)
    assert log.subject == 'Reminder'
    assert log.body == 'Hello Nora'
    assert log.template == tpl


def test_bad_requests(reception):
    with pytest.raises(ValidationError):
        send_notification(reception, recipient_type='role', notification_type='sms', body='x')
    with pytest.raises(ValidationError):
        send_notification(reception, recipient_type='user', recipient_ids=[9999], notification_type='sms',
                          body='x')
    with pytest.raises(ValidationError):
        send_notification(reception, recipient_type='role', role='manager', notification_type='sms', body=' ')
    with pytest.raises(NotFound):
        send_notification(reception, recipient_type='role', role='reception', notification_type='sms',
                          template_id=42)
