from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from emr.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, resource_type: Optional[str] = None,
               resource_id: Any = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        resource_type=resource_type or '',
        resource_id='' if resource_id is None else str(resource_id),
        detail=detail or {},
    )


def list_events(*, action: Optional[str] = None, resource_type: Optional[str] = None,
                resource_id: Optional[str] = None, user_id: Optional[int] = None,
                page: int = 1, page_size: int = 50):
    qs = AuditEvent.objects.select_related('user')
    if action:
        qs = qs.filter(action=action)
    if resource_type:
        qs = qs.filter(resource_type=resource_type)
    if resource_id:
        qs = qs.filter(resource_id=str(resource_id))
    if user_id:
        qs = qs.filter(user_id=user_id)
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(200, max(1, int(page_size or 50)))
    start = (page - 1) * page_size
    items = [{
        'id': e.id,
        'userId': e.user_id,
        'username': e.user.username if e.user else None,
        'action': e.action,
        'resourceType': e.resource_type,
        'resourceId': e.resource_id,
        'detail': e.detail,
        'createdAt': e.created_at.isoformat(),
    } for e in qs.order_by('-created_at', '-id')[start:start + page_size]]
    return items, total
