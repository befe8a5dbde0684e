from typing import Iterable

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import ValidationError

from emr.exceptions import ConflictError
from emr.models import UserRole
from emr.services.audit import log_action

User = get_user_model()

ROLE_NAMES = {r for r, _ in UserRole.ROLE_CHOICES}


def _check_password(password: str, user=None) -> None:
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationError({'password': e.messages})


def _check_roles(roles: Iterable[str]) -> list[str]:
    roles = list(dict.fromkeys(roles or []))
    unknown = [r for r in roles if r not in ROLE_NAMES]
    if unknown:
        raise ValidationError({'roles': f'unknown roles: {", ".join(unknown)}'})
    return roles


@transaction.atomic
def create_user(operator, *, username: str, password: str, roles=(), first_name: str = '',
                last_name: str = '', email: str = '', phone: str = ''):
    if User.objects.filter(username=username).exists():
        raise ConflictError(f'username {username} is taken')
    roles = _check_roles(roles)
    _check_password(password, User(username=username, first_name=first_name, last_name=last_name, email=email))
    user = User.objects.create_user(username=username, password=password, first_name=first_name,
                                    last_name=last_name, email=email, phone=phone)
    UserRole.objects.bulk_create([UserRole(user=user, role=r) for r in roles])
    log_action(user=operator, action='user_create', resource_type='user', resource_id=user.id,
               detail={'username': username, 'roles': roles})
    return user


@transaction.atomic
def set_roles(operator, user, roles) -> list[str]:
    """Replace ``user``'s roles with exactly ``roles``."""
    roles = _check_roles(roles)
    if operator.pk == user.pk and 'admin' in user.role_names() and 'admin' not in roles:
        raise ConflictError('you cannot remove your own admin role')
    before = sorted(user.role_names())
    UserRole.objects.filter(user=user).exclude(role__in=roles).delete()
    existing = set(UserRole.objects.filter(user=user).values_list('role', flat=True))
    UserRole.objects.bulk_create([UserRole(user=user, role=r) for r in roles if r not in existing])
    user._role_cache = None
    log_action(user=operator, action='role_change', resource_type='user', resource_id=user.id,
               detail={'before': before, 'after': sorted(roles)})
    return sorted(user.role_names())


def reset_password(operator, user, password: str) -> None:
    _check_password(password, user)
    user.set_password(password)
    user.save(update_fields=['password'])
    log_action(user=operator, action='password_reset', resource_type='user', resource_id=user.id)


def serialize_user(u) -> dict:
    return {
        'id': u.id,
        'username': u.username,
        'name': u.display_name,
        'firstName': u.first_name,
        'lastName': u.last_name,
        'email': u.email,
        'phone': u.phone,
        'isActive': u.is_active,
        'roles': sorted(u.role_names()),
    }
