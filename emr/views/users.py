"""
Administrator user management.

Admins create staff accounts, replace their role list, reset
passwords and browse the audit log.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import User
from ..permissions import IsAdminRole
from ..serializers.users import AuditLogQuerySerializer, PasswordResetSerializer, RolesSerializer, UserCreateSerializer
from ..services.audit import list_events
from ..services.users import create_user, set_roles, reset_password, serialize_user


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    if request.method == 'POST':
        s = UserCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = create_user(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_user(user)}, status=201)
    qs = User.objects.prefetch_related('roles').order_by('username')
    q = (request.query_params.get('q') or '').strip()
    if q:
        qs = qs.filter(Q(username__icontains=q) | Q(first_name__icontains=q) | Q(last_name__icontains=q))
    role = request.query_params.get('role')
    if role:
        qs = qs.filter(roles__role=role).distinct()
    data = []
    for u in qs:
        u._role_cache = {r.role for r in u.roles.all()}
        data.append(serialize_user(u))
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_roles(request, user_id: int):
    """Replace the user's roles with the posted list."""
    user = get_object_or_404(User, id=user_id)
    s = RolesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    roles = set_roles(request.user, user, s.validated_data['roles'])
    return Response({'ok': True, 'roles': roles})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_reset_password(request, user_id: int):
    user = get_object_or_404(User, id=user_id)
    s = PasswordResetSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    reset_password(request.user, user, s.validated_data['password'])
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_logs(request):
    q = AuditLogQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = list_events(
        action=vd.get('action'),
        resource_type=vd.get('resourceType'),
        resource_id=vd.get('resourceId'),
        user_id=vd.get('userId'),
        page=vd['page'],
        page_size=vd['pageSize'],
    )
    return Response({'ok': True, 'data': items,
                     'pagination': {'total': total, 'page': vd['page'], 'pageSize': vd['pageSize']}})

