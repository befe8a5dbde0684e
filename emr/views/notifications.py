from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import ConflictError
from ..models import NotificationLog, NotificationTemplate
from ..permissions import IsManager, IsReception
from ..serializers.notification import NotificationSendSerializer, TemplateSerializer
from ..services.audit import log_action
from ..services.notifications import send_notification, serialize_log


def _template(t: NotificationTemplate) -> dict:
    return {'id': t.id, 'name': t.name, 'notificationType': t.notification_type,
            'subject': t.subject, 'body': t.body, 'isActive': t.is_active}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsReception])
def notifications(request):
    if request.method == 'POST':
        s = NotificationSendSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        logs = send_notification(request.user, **s.validated_data)
        return Response({
            'ok': True,
            'sent': sum(1 for n in logs if n.status == 'sent'),
            'failed': sum(1 for n in logs if n.status == 'failed'),
            'data': [serialize_log(n) for n in logs],
        }, status=201)
    qs = NotificationLog.objects.order_by('-created_at', '-id')
    p = request.query_params
    if p.get('status'):
        qs = qs.filter(status=p['status'])
    if p.get('recipientType'):
        qs = qs.filter(recipient_type=p['recipientType'])
    return Response({'ok': True, 'data': [serialize_log(n) for n in qs[:200]]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManager])
def notification_templates(request):
    if request.method == 'POST':
        s = TemplateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        if NotificationTemplate.objects.filter(name=s.validated_data['name']).exists():
            raise ConflictError('template name already exists')
        t = NotificationTemplate.objects.create(**s.validated_data)
        log_action(user=request.user, action='template_create', resource_type='notification_template',
                   resource_id=t.id)
        return Response({'ok': True, 'data': _template(t)}, status=201)
    return Response({'ok': True, 'data': [_template(t) for t in NotificationTemplate.objects.order_by('name')]})
