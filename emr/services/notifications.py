"""
Outbound notifications to staff (by user or role) and patients.

Each recipient gets its own :class:`NotificationLog` row.  Email goes
through Django's mail backend; SMS and internal messages have no
gateway and are recorded as sent.
"""
import logging
from typing import Optional

import bleach
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from emr.models import NotificationLog, NotificationTemplate, Patient, UserRole
from emr.services.audit import log_action

logger = logging.getLogger('emr.notifications')

User = get_user_model()


def _personalize(text: str, name: str, first_name: str) -> str:
    return (text or '').replace('{{name}}', name).replace('{{first_name}}', first_name)


def _resolve_recipients(recipient_type: str, recipient_ids=None, role: Optional[str] = None) -> list[dict]:
    if recipient_type == 'role':
        if not role:
            raise ValidationError({'role': 'role is required for role notifications'})
        user_ids = UserRole.objects.filter(role=role).values_list('user_id', flat=True)
        users = User.objects.filter(id__in=user_ids, is_active=True)
        return [{'type': 'user', 'id': u.id, 'name': u.display_name, 'first_name': u.first_name or u.username,
                 'email': u.email, 'phone': u.phone} for u in users]
    ids = [i for i in (recipient_ids or []) if i not in (None, '')]
    if recipient_type == 'user':
        users = User.objects.filter(id__in=ids, is_active=True)
        return [{'type': 'user', 'id': u.id, 'name': u.display_name, 'first_name': u.first_name or u.username,
                 'email': u.email, 'phone': u.phone} for u in users]
    if recipient_type == 'patient':
        patients = Patient.objects.filter(id__in=ids)
        return [{'type': 'patient', 'id': p.id, 'name': p.full_name, 'first_name': p.first_name,
                 'email': p.email, 'phone': p.phone_mobile} for p in patients]
    raise ValidationError({'recipient_type': f'unknown recipient type {recipient_type}'})


@transaction.atomic
def send_notification(operator, *, recipient_type: str, notification_type: str, recipient_ids=None,
                      role: Optional[str] = None, subject: str = '', body: str = '',
                      template_id: Optional[int] = None) -> list[NotificationLog]:
    template = None
    if template_id:
        template = NotificationTemplate.objects.filter(id=template_id, is_active=True).first()
        if template is None:
            raise NotFound('notification template not found')
        subject = subject or template.subject
        body = body or template.body
    body = bleach.clean((body or '').strip(), strip=True)
    subject = bleach.clean((subject or '').strip(), strip=True)
    if not body:
        raise ValidationError({'body': 'message body is required'})

    recipients = _resolve_recipients(recipient_type, recipient_ids, role)
    if not recipients:
        raise ValidationError({'recipients': 'no recipients found'})

    logs = []
    for r in recipients:
        text = _personalize(body, r['name'], r['first_name'])
        log = NotificationLog.objects.create(
            recipient_type=recipient_type,
            recipient_id=str(r['id']),
            notification_type=notification_type,
            subject=subject,
            body=text,
            template=template,
            status='pending',
            metadata={'name': r['name'], 'email': r['email'], 'phone': r['phone'],
                      'role': role if recipient_type == 'role' else None},
            created_by=operator,
        )
        if notification_type == 'email':
            if not r['email']:
                log.status = 'failed'
                log.error_message = 'recipient has no email address'
            else:
                try:
                    send_mail(subject or 'Clinic notification', text, settings.DEFAULT_FROM_EMAIL, [r['email']])
                    log.status = 'sent'
                    log.sent_at = timezone.now()
                except Exception as e:
                    logger.warning('email to %s failed: %s', r['email'], e)
                    log.status = 'failed'
                    log.error_message = str(e)
        else:
            log.status = 'sent'
            log.sent_at = timezone.now()
        log.save(update_fields=['status', 'error_message', 'sent_at'])
        logs.append(log)

    sent = sum(1 for log in logs if log.status == 'sent')
    log_action(user=operator, action='notification_send', resource_type='notification',
               detail={'recipientType': recipient_type, 'type': notification_type,
                       'recipients': len(logs), 'sent': sent})
    logger.info('%s notification sent to %s/%s %s recipients', notification_type, sent, len(logs), recipient_type)
    return logs


def serialize_log(n: NotificationLog) -> dict:
    return {
        'id': n.id,
        'recipientType': n.recipient_type,
        'recipientId': n.recipient_id,
        'notificationType': n.notification_type,
        'subject': n.subject,
        'body': n.body,
        'templateId': n.template_id,
        'status': n.status,
        'errorMessage': n.error_message,
        'metadata': n.metadata,
        'sentAt': n.sent_at.isoformat() if n.sent_at else None,
        'createdAt': n.created_at.isoformat(),
    }
