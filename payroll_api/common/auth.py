# payroll_api/common/auth.py
from __future__ import annotations

from dataclasses import dataclass, field
from functools import wraps
from typing import Iterable, Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.errors import ForbiddenError
from payroll_api.common.http import fail
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.security import Role, Permission, UserRole, RolePermission

# actions an employee may always perform on records that belong to them
SELF_SERVICE_ACTIONS = {
    "payroll.salary.read",
    "payroll.payslip.read",
    "leave.balance.read",
    "leave.request.read",
    "attendance.read",
    "shift.request.create",
}


@dataclass
class Subject:
    user_id: Optional[int]
    roles: Set[str] = field(default_factory=set)
    perms: Set[str] = field(default_factory=set)
    employee_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    'payroll.*' matches 'payroll.run.write'; 'payroll.run.*' matches
    'payroll.run.read'; anything else must match exactly.
    """
    if user_perm == required:
        return True
    if user_perm.endswith(".*"):
        return required.startswith(user_perm[:-1])
    return False


def _has_any_perm(user_perms: Set[str], required_perms: Iterable[str]) -> bool:
    if not required_perms:
        return True
    if not user_perms:
        return False
    for req in required_perms:
        if any(_wildcard_match(up, req) for up in user_perms):
            return True
    return False


def _collect_perms_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def token_claims(user: User) -> dict:
    """Claims embedded in access tokens at login."""
    return {
        "roles": sorted(_collect_roles_from_db(user.id)),
        "perms": sorted(_collect_perms_from_db(user.id)),
        "employee_id": user.employee_id,
        "email": user.email,
        "name": user.full_name,
    }


def current_subject() -> Subject:
    """
    Subject of the current request. JWT claims first; roles/perms/employee
    fall back to a live DB read when the token does not carry them.
    """
    claims = get_jwt() or {}
    ident = get_jwt_identity()
    uid = int(ident) if ident not in (None, "") else None

    roles = set(claims.get("roles") or [])
    perms = set(claims.get("perms") or [])
    emp_id = claims.get("employee_id")

    if uid is not None and not (roles and perms):
        user = db.session.get(User, uid)
        if user is not None:
            roles = roles or _collect_roles_from_db(user.id)
            perms = perms or _collect_perms_from_db(user.id)
            if emp_id is None:
                emp_id = user.employee_id

    return Subject(user_id=uid, roles=roles, perms=perms, employee_id=emp_id)


def _owner_of(resource) -> Optional[int]:
    if resource is None:
        return None
    if isinstance(resource, dict):
        return resource.get("employee_id")
    return getattr(resource, "employee_id", None)


# ---------- capability check ----------

def can(subject: Subject, action: str, resource=None) -> bool:
    """
    True when subject may perform action (a permission code) on resource.

    admin passes everything; otherwise the subject needs a matching permission,
    or the action is self-service and the resource belongs to the subject.
    """
    if subject is None:
        return False
    if subject.is_admin:
        return True
    if _has_any_perm(subject.perms, [action]):
        return True
    if action in SELF_SERVICE_ACTIONS and subject.employee_id is not None:
        owner = _owner_of(resource)
        return owner is not None and int(owner) == int(subject.employee_id)
    return False


def authorize(action: str, resource=None) -> Subject:
    """Raise ForbiddenError unless the current subject can do action."""
    subject = current_subject()
    if not can(subject, action, resource):
        raise ForbiddenError()
    return subject


# ---------- decorators ----------

def requires_perms(*perm_codes: str):
    """
    Require that the current user has ANY of the given permission codes
    (wildcards granted to the user are honoured, admin always passes).
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if not perm_codes:
                return fn(*args, **kwargs)

            subject = current_subject()
            if subject.user_id is None:
                return fail("Unauthorized", status=401)
            if not any(can(subject, code) for code in perm_codes):
                return fail("Forbidden", status=403, code="FORBIDDEN")
            return fn(*args, **kwargs)
        return inner
    return outer
