# payroll_api/services/shift_service.py
"""
Shift catalogue, per-date assignments and shift-change requests.

An approved change request rewrites the (employee, date) assignment in the
same transaction that flips the request out of Pending.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update, func

from payroll_api.extensions import db, unit_of_work
from payroll_api.common.errors import ValidationError, NotFoundError, InvalidStateError
from payroll_api.common.dates import require_date, require_time, to_int
from payroll_api.models.employee import Employee
from payroll_api.models.attendance import Shift, ShiftAssignment
from payroll_api.models.shift_request import ShiftChangeRequest

log = logging.getLogger(__name__)

REQ_PENDING = "Pending"
REQ_APPROVED = "Approved"
REQ_REJECTED = "Rejected"


# ---------- catalogue ----------

def list_shifts():
    return Shift.query.order_by(Shift.name.asc()).all()


def available_shifts(employee_id, on_date):
    """Shifts not already held by another employee on that date."""
    d = require_date(on_date, "date")
    taken = (
        db.select(ShiftAssignment.shift_id)
        .where(ShiftAssignment.date == d)
        .where(ShiftAssignment.employee_id != employee_id)
    )
    return Shift.query.filter(~Shift.id.in_(taken)).order_by(Shift.name.asc()).all()


def create_shift(name, start_time, end_time) -> Shift:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    st = require_time(start_time, "start_time")
    et = require_time(end_time, "end_time")
    if st == et:
        raise ValidationError("start_time and end_time must differ")
    if Shift.query.filter(func.lower(Shift.name) == name.lower()).first():
        raise ValidationError("Shift name already exists")

    s = Shift(name=name, start_time=st, end_time=et)
    db.session.add(s)
    db.session.commit()
    log.info("shift created id=%s name=%s %s-%s", s.id, s.name, st, et)
    return s


def _require_shift(shift_id) -> Shift:
    s = db.session.get(Shift, to_int(shift_id, "shift_id"))
    if s is None:
        raise NotFoundError("Shift not found")
    return s


def _require_employee(employee_id) -> Employee:
    emp = db.session.get(Employee, to_int(employee_id, "employee_id"))
    if emp is None:
        raise NotFoundError("Employee not found.")
    return emp


# ---------- assignments ----------

def _upsert_assignment(session, employee_id: int, shift_id: int, d) -> ShiftAssignment:
    sa = (
        session.query(ShiftAssignment)
        .filter_by(employee_id=employee_id, date=d)
        .with_for_update()
        .first()
    )
    if sa is None:
        sa = ShiftAssignment(employee_id=employee_id, shift_id=shift_id, date=d)
        session.add(sa)
    else:
        sa.shift_id = shift_id
    return sa


def assign_shift(employee_id, shift_id, on_date) -> ShiftAssignment:
    if not employee_id or not shift_id or not on_date:
        raise ValidationError("employee_id, shift_id, and date are required.")
    emp = _require_employee(employee_id)
    shift = _require_shift(shift_id)
    d = require_date(on_date, "date")

    with unit_of_work() as s:
        sa = _upsert_assignment(s, emp.id, shift.id, d)
    log.info("shift assigned employee=%s shift=%s date=%s", emp.id, shift.id, d)
    return sa


def current_shift(employee_id, on_date) -> Optional[Shift]:
    d = require_date(on_date, "date")
    sa = ShiftAssignment.query.filter_by(employee_id=employee_id, date=d).first()
    return sa.shift if sa else None


def assignments_for_date(on_date):
    """[(Employee, Shift | None)] for every non-admin employee."""
    d = require_date(on_date, "date")
    rows = (
        db.session.query(Employee, Shift)
        .outerjoin(
            ShiftAssignment,
            (ShiftAssignment.employee_id == Employee.id) & (ShiftAssignment.date == d),
        )
        .outerjoin(Shift, Shift.id == ShiftAssignment.shift_id)
        .filter(func.lower(func.trim(Employee.role)) != "admin")
        .order_by(Employee.code.asc())
        .all()
    )
    return rows


# ---------- change requests ----------

def submit_change_request(employee_id, requested_shift_id, request_date, reason=None) -> ShiftChangeRequest:
    if not requested_shift_id or not request_date:
        raise ValidationError("Missing required fields")
    emp = _require_employee(employee_id)
    wanted = _require_shift(requested_shift_id)
    d = require_date(request_date, "request_date")

    sa = ShiftAssignment.query.filter_by(employee_id=emp.id, date=d).first()
    if sa is None:
        raise ValidationError("No current shift found for the specified date")

    dup = (
        ShiftChangeRequest.query
        .filter_by(employee_id=emp.id, request_date=d, status=REQ_PENDING)
        .first()
    )
    if dup:
        raise ValidationError("A pending request already exists for this date")

    r = ShiftChangeRequest(
        employee_id=emp.id,
        current_shift_id=sa.shift_id,
        requested_shift_id=wanted.id,
        request_date=d,
        reason=reason,
        status=REQ_PENDING,
    )
    db.session.add(r)
    db.session.commit()
    log.info("shift change requested id=%s employee=%s date=%s -> shift=%s", r.id, emp.id, d, wanted.id)
    return r


def decide_change_request(request_id, decision, approver=None, rejection_reason=None) -> ShiftChangeRequest:
    status = (decision or "").strip().capitalize()
    if status not in (REQ_APPROVED, REQ_REJECTED):
        raise ValidationError("Invalid status")

    r = db.session.get(ShiftChangeRequest, to_int(request_id, "request_id"))
    if r is None:
        raise NotFoundError("Request not found")
    if (r.status or "").strip().lower() != "pending":
        raise InvalidStateError("Request has already been processed")

    now = datetime.utcnow()
    with unit_of_work() as s:
        res = s.execute(
            update(ShiftChangeRequest)
            .where(ShiftChangeRequest.id == r.id)
            .where(func.lower(func.trim(ShiftChangeRequest.status)) == "pending")
            .values(
                status=status,
                approved_by_user_id=approver,
                approved_at=now,
                rejection_reason=rejection_reason if status == REQ_REJECTED else None,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InvalidStateError("Request has already been processed")

        if status == REQ_APPROVED:
            _upsert_assignment(s, r.employee_id, r.requested_shift_id, r.request_date)

    log.info("shift change %s id=%s", status.lower(), r.id)
    return r


def list_change_requests(employee_id=None, status: Optional[str] = None):
    q = ShiftChangeRequest.query
    if employee_id:
        q = q.filter(ShiftChangeRequest.employee_id == employee_id)
    if status:
        q = q.filter(ShiftChangeRequest.status == status)
    return q.order_by(ShiftChangeRequest.created_at.desc(), ShiftChangeRequest.id.desc()).all()


def pending_change_count() -> int:
    return ShiftChangeRequest.query.filter(ShiftChangeRequest.status == REQ_PENDING).count()
