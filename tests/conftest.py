from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.employee import Employee
from payroll_api.models.attendance import AttendanceRecord, ATT_PRESENT, TYPE_NORMAL
from payroll_api.seed_rbac import ROLE_PERM_MAP


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    app = create_app(overrides={"TESTING": True})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    seq = {"n": 0}

    def _make(full_name="User", email=None, password="secret"):
        seq["n"] += 1
        u = User(email=email or f"user{seq['n']}@example.test", full_name=full_name, status="active")
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u
    return _make


@pytest.fixture
def make_employee(app, make_user):
    seq = {"n": 0}

    def _make(name="Worker", role="employee", status="active", department="Engineering", with_user=True):
        seq["n"] += 1
        user = make_user(full_name=name) if with_user else None
        emp = Employee(
            user_id=user.id if user else None,
            code=f"E{seq['n']:03d}",
            email=f"emp{seq['n']}@example.test",
            name=name,
            role=role,
            department=department,
            status=status,
            doj=date(2023, 1, 1),
        )
        db.session.add(emp)
        db.session.commit()
        return emp
    return _make


@pytest.fixture
def auth_headers(app, make_user):
    """Bearer headers for a role; pass an employee to act as that employee."""
    def _headers(role="employee", employee=None):
        uid = employee.user_id if employee is not None and employee.user_id else make_user(full_name=role).id
        claims = {
            "roles": [role],
            "perms": list(ROLE_PERM_MAP[role]),
            "employee_id": employee.id if employee is not None else None,
        }
        token = create_access_token(identity=str(uid), additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def mark_attendance(app):
    def _mark(employee_id, days, attendance_type=TYPE_NORMAL, status=ATT_PRESENT):
        for d in days:
            db.session.add(AttendanceRecord(
                employee_id=employee_id, date=d, status=status, attendance_type=attendance_type,
            ))
        db.session.commit()
    return _mark
