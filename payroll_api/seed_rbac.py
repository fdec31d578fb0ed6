# payroll_api/seed_rbac.py
from payroll_api.extensions import db
from payroll_api.models.security import Role, Permission, RolePermission, UserRole
from payroll_api.models.user import User

DEFAULT_ROLES = [
    ("admin", "Administrator"),
    ("hr", "HR"),
    ("finance", "Finance"),
    ("employee", "Employee"),
]

DEFAULT_PERMS = [
    # Payroll
    "payroll.salary.read", "payroll.salary.write",
    "payroll.run.read", "payroll.run.write",
    "payroll.payslip.read",
    "payroll.tax.read", "payroll.tax.write",
    "payroll.report.read",

    # Leave
    "leave.request.create", "leave.request.read", "leave.request.approve",
    "leave.balance.read",

    # Attendance
    "attendance.clockin", "attendance.read", "attendance.calendar.manage",

    # Shifts
    "shift.read", "shift.manage",
    "shift.request.create", "shift.request.approve",
]

PAYROLL_PERMS = [p for p in DEFAULT_PERMS if p.startswith("payroll.")]

ROLE_PERM_MAP = {
    "admin": DEFAULT_PERMS,
    "hr": DEFAULT_PERMS,
    "finance": PAYROLL_PERMS + ["attendance.read", "leave.balance.read"],
    "employee": [
        "leave.request.create",
        "attendance.clockin",
        "shift.read", "shift.request.create",
    ],
}


def _ensure_roles():
    code_to_role = {}
    for code, _name in DEFAULT_ROLES:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code)
            db.session.add(r)
            db.session.flush()
        code_to_role[code] = r
    return code_to_role


def _ensure_permissions():
    code_to_perm = {}
    for code in DEFAULT_PERMS:
        p = Permission.query.filter_by(code=code).first()
        if not p:
            p = Permission(code=code, name=code.replace(".", " ").title())
            db.session.add(p)
            db.session.flush()
        code_to_perm[code] = p
    return code_to_perm


def _map_role_perms(code_to_role, code_to_perm):
    for rcode, perms in ROLE_PERM_MAP.items():
        r = code_to_role[rcode]
        existing = {(rp.role_id, rp.permission_id) for rp in r.permissions}
        for pcode in perms:
            p = code_to_perm[pcode]
            if (r.id, p.id) not in existing:
                db.session.add(RolePermission(role_id=r.id, permission_id=p.id))


def ensure_user_role(user: User, role_code: str):
    role = Role.query.filter_by(code=role_code).first()
    if role is None:
        raise ValueError(f"unknown role {role_code!r}; run seed-rbac first")
    if not any(ur.role_id == role.id for ur in user.user_roles):
        db.session.add(UserRole(user_id=user.id, role_id=role.id))


def run():
    code_to_role = _ensure_roles()
    code_to_perm = _ensure_permissions()
    _map_role_perms(code_to_role, code_to_perm)
    db.session.commit()
    return {"ok": True, "roles": len(DEFAULT_ROLES), "perms": len(DEFAULT_PERMS)}
