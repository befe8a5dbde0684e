"""
Role based permission classes.

A user may hold several roles (see :class:`emr.models.UserRole`).  The
``admin`` role and Django superusers pass every check.  Views combine
``IsAuthenticated`` with one of the classes below, usually built with
:func:`roles_required`.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission, SAFE_METHODS

STAFF_ROLES = ('admin', 'reception', 'clinician', 'billing', 'manager')


def _user_has_role(request, roles) -> bool:
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return False
    return user.has_any_role(*roles)


def roles_required(*roles: str) -> type[BasePermission]:
    """Build a permission class that allows any of ``roles``."""

    class HasRole(BasePermission):
        message = "requires one of the roles: " + ", ".join(roles)

        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            return _user_has_role(request, roles)

    HasRole.__name__ = "HasRole_" + "_".join(roles)
    return HasRole


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    message = "requires the admin role"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _user_has_role(request, ("admin",))


class IsStaff(BasePermission):
    """Any clinic staff role; portal patients are excluded."""
    message = "staff only"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _user_has_role(request, STAFF_ROLES)


class StaffReadManagerWrite(BasePermission):
    """Staff may read; only managers may write."""
    message = "requires the manager role"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _user_has_role(request, STAFF_ROLES)
        return _user_has_role(request, ("manager",))


IsReception = roles_required("reception", "manager")
IsClinician = roles_required("clinician")
IsFrontDesk = roles_required("reception", "clinician")
IsBilling = roles_required("billing", "reception", "manager")
IsCashier = roles_required("billing", "reception")
IsBillingManager = roles_required("billing", "manager")
IsScheduler = roles_required("reception", "clinician", "manager")
IsManager = roles_required("manager")


def require_roles(request, *roles: str) -> None:
    """Raise ``PermissionDenied`` unless the user holds one of ``roles``.

    Used by views whose GET and POST handlers need different role sets.
    """
    if not _user_has_role(request, roles):
        raise PermissionDenied("requires one of the roles: " + ", ".join(roles))
