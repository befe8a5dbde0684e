"""Clinic, service catalogue and queue configuration."""
from __future__ import annotations

from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import ConflictError
from ..models import Clinic, Queue, Service
from ..permissions import IsManager, StaffReadManagerWrite
from ..serializers.config import ClinicSerializer, ServiceSerializer
from ..serializers.queue import QueueSerializer, QueueUpdateSerializer
from ..services.audit import log_action


def _clinic(c: Clinic) -> dict:
    return {'id': c.id, 'name': c.name, 'code': c.code, 'address': c.address,
            'phone': c.phone, 'isActive': c.is_active}


def _service(s: Service) -> dict:
    return {'id': s.id, 'code': s.code, 'name': s.name, 'type': s.type, 'description': s.description,
            'unitPrice': str(s.unit_price), 'taxRate': str(s.tax_rate), 'isActive': s.is_active}


def _queue(q: Queue) -> dict:
    return {'id': q.id, 'clinicId': q.clinic_id, 'name': q.name, 'queueType': q.queue_type,
            'prefix': q.prefix, 'isActive': q.is_active, 'slaMinutes': q.sla_minutes}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffReadManagerWrite])
def clinics(request):
    if request.method == 'POST':
        s = ClinicSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        if Clinic.objects.filter(code=s.validated_data['code']).exists():
            raise ConflictError('clinic code already exists')
        clinic = Clinic.objects.create(**s.validated_data)
        log_action(user=request.user, action='clinic_create', resource_type='clinic', resource_id=clinic.id)
        return Response({'ok': True, 'data': _clinic(clinic)}, status=201)
    qs = Clinic.objects.order_by('name')
    if request.query_params.get('active') == '1':
        qs = qs.filter(is_active=True)
    return Response({'ok': True, 'data': [_clinic(c) for c in qs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffReadManagerWrite])
def services(request):
    if request.method == 'POST':
        s = ServiceSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        if Service.objects.filter(code=s.validated_data['code']).exists():
            raise ConflictError('service code already exists')
        service = Service.objects.create(**s.validated_data)
        log_action(user=request.user, action='service_create', resource_type='service', resource_id=service.id)
        return Response({'ok': True, 'data': _service(service)}, status=201)
    qs = Service.objects.order_by('name')
    if request.query_params.get('active') == '1':
        qs = qs.filter(is_active=True)
    return Response({'ok': True, 'data': [_service(s) for s in qs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffReadManagerWrite])
def queues(request):
    if request.method == 'POST':
        s = QueueSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        clinic = get_object_or_404(Clinic, id=vd.pop('clinic_id'))
        if vd.get('sla_minutes') is None:
            vd['sla_minutes'] = settings.CLINIC_DEFAULT_SLA_MINUTES
        queue = Queue.objects.create(clinic=clinic, **vd)
        log_action(user=request.user, action='queue_create', resource_type='queue', resource_id=queue.id)
        return Response({'ok': True, 'data': _queue(queue)}, status=201)
    qs = Queue.objects.order_by('name', 'id')
    if request.query_params.get('type'):
        qs = qs.filter(queue_type=request.query_params['type'])
    if request.query_params.get('active') == '1':
        qs = qs.filter(is_active=True)
    return Response({'ok': True, 'data': [_queue(q) for q in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def queue_update(request, queue_id: int):
    queue = get_object_or_404(Queue, id=queue_id)
    s = QueueUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    if 'clinic_id' in vd:
        queue.clinic = get_object_or_404(Clinic, id=vd.pop('clinic_id'))
    for field, value in vd.items():
        setattr(queue, field, value)
    queue.save()
    log_action(user=request.user, action='queue_update', resource_type='queue', resource_id=queue.id,
               detail={'fields': sorted(s.validated_data.keys())})
    return Response({'ok': True, 'data': _queue(queue)})
