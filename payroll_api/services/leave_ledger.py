# payroll_api/services/leave_ledger.py
"""
Leave balance ledger: (total, used, pending) per employee per year.

    apply    : pending += n          (only if n <= available)
    approve  : pending -= n, used += n
    reject   : pending -= n

Every balance change is a single conditional UPDATE on the balance row, and
approve/reject flip the request with `UPDATE ... WHERE status = 'pending'`.
The affected-row count is the serialization point: a concurrent loser sees 0
rows and gets InvalidStateError / InsufficientBalanceError.
"""
from __future__ import annotations

import logging
from datetime import datetime, date
from typing import Optional

from flask import current_app, has_app_context
from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError

from payroll_api.extensions import db, unit_of_work
from payroll_api.common.errors import (
    ValidationError, NotFoundError, InsufficientBalanceError, InvalidStateError,
)
from payroll_api.common.dates import parse_date, to_int
from payroll_api.models.employee import Employee
from payroll_api.models.leave import (
    LeaveBalance, LeaveRequest, LeaveApprovalAction,
    LEAVE_PENDING, LEAVE_APPROVED, LEAVE_REJECTED,
)
from payroll_api.services.calendar_math import business_days_between

log = logging.getLogger(__name__)

DEFAULT_TOTAL_DAYS = 30
LEAVE_TYPE_MAX = 40


def _default_total() -> int:
    if has_app_context():
        return int(current_app.config.get("PAYROLL_DEFAULT_LEAVE_DAYS", DEFAULT_TOTAL_DAYS))
    return DEFAULT_TOTAL_DAYS


def _is_pending(status) -> bool:
    # legacy rows carry 'pending', 'Pending ', ... so compare loosely
    return bool(status) and str(status).strip().lower() == "pending"


def _leave_type(value) -> str:
    if value is None:
        return "Annual"
    if not isinstance(value, str):
        raise ValidationError("leave_type must be text")
    lt = value.strip() or "Annual"
    if len(lt) > LEAVE_TYPE_MAX:
        raise ValidationError(f"leave_type must be at most {LEAVE_TYPE_MAX} characters")
    return lt


def _require_employee(employee_id) -> Employee:
    emp = db.session.get(Employee, to_int(employee_id, "employee_id"))
    if emp is None:
        raise NotFoundError("Employee not found.")
    return emp


def _available_expr():
    return LeaveBalance.total_days - LeaveBalance.used_days - LeaveBalance.pending_days


# ---------- balances ----------

def get_or_create_balance(employee_id: int, year: int) -> LeaveBalance:
    """Lazily create the (employee, year) row with the default total."""
    bal = LeaveBalance.query.filter_by(employee_id=employee_id, year=year).first()
    if bal is not None:
        return bal

    bal = LeaveBalance(
        employee_id=employee_id,
        year=year,
        total_days=_default_total(),
        used_days=0,
        pending_days=0,
    )
    db.session.add(bal)
    try:
        db.session.commit()
        log.info("leave balance created employee=%s year=%s total=%s", employee_id, year, bal.total_days)
    except IntegrityError:
        # another request created it first
        db.session.rollback()
        bal = LeaveBalance.query.filter_by(employee_id=employee_id, year=year).one()
    return bal


def leave_balance(employee_id, year: Optional[int] = None) -> dict:
    emp = _require_employee(employee_id)
    year = to_int(year, "year") or date.today().year
    bal = get_or_create_balance(emp.id, year)
    return balance_row(bal)


def balance_row(bal: LeaveBalance) -> dict:
    return {
        "employee_id": bal.employee_id,
        "year": bal.year,
        "total": int(bal.total_days),
        "used": int(bal.used_days),
        "pending": int(bal.pending_days),
        "available": bal.available_days,
    }


# ---------- state machine ----------

def apply(
    employee_id: int,
    year: int,
    requested_days: int,
    *,
    leave_type: str = "Annual",
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
    applied_by: Optional[int] = None,
) -> LeaveRequest:
    if requested_days is None or int(requested_days) <= 0:
        raise ValidationError("requested days must be greater than zero")
    n = int(requested_days)
    lt = _leave_type(leave_type)

    bal = get_or_create_balance(employee_id, year)

    with unit_of_work() as s:
        # row lock on backends that have one; the guarded UPDATE below is what enforces the limit
        bal = (
            s.query(LeaveBalance)
            .filter(LeaveBalance.id == bal.id)
            .with_for_update()
            .populate_existing()
            .one()
        )
        res = s.execute(
            update(LeaveBalance)
            .where(LeaveBalance.id == bal.id)
            .where(_available_expr() >= n)
            .values(pending_days=LeaveBalance.pending_days + n, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            s.refresh(bal)
            log.warning(
                "leave apply refused employee=%s year=%s requested=%s available=%s",
                employee_id, year, n, bal.available_days,
            )
            raise InsufficientBalanceError(bal.available_days, n)

        lr = LeaveRequest(
            employee_id=employee_id,
            leave_type=lt,
            start_date=start_date,
            end_date=end_date,
            year=year,
            total_days=n,
            reason=reason,
            status=LEAVE_PENDING,
        )
        s.add(lr)
        s.flush()
        s.add(LeaveApprovalAction(leave_request_id=lr.id, action="applied", acted_by_user_id=applied_by))

    log.info("leave applied request=%s employee=%s year=%s days=%s", lr.id, employee_id, year, n)
    return lr


def _decide(request_id, new_status: str, approver: Optional[int], reason: Optional[str]) -> LeaveRequest:
    lr = db.session.get(LeaveRequest, to_int(request_id, "request_id"))
    if lr is None:
        raise NotFoundError("Leave request not found")
    if not _is_pending(lr.status):
        raise InvalidStateError("Leave request has already been processed", payload={"status": lr.status})

    n = int(lr.total_days)
    now = datetime.utcnow()

    with unit_of_work() as s:
        res = s.execute(
            update(LeaveRequest)
            .where(LeaveRequest.id == lr.id)
            .where(func.lower(func.trim(LeaveRequest.status)) == "pending")
            .values(
                status=new_status,
                approved_by_user_id=approver,
                approved_at=now,
                rejection_reason=reason if new_status == LEAVE_REJECTED else None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            log.warning("leave %s lost race request=%s", new_status.lower(), lr.id)
            raise InvalidStateError("Leave request has already been processed")

        values = {"pending_days": LeaveBalance.pending_days - n, "updated_at": now}
        if new_status == LEAVE_APPROVED:
            values["used_days"] = LeaveBalance.used_days + n

        res = s.execute(
            update(LeaveBalance)
            .where(LeaveBalance.employee_id == lr.employee_id)
            .where(LeaveBalance.year == lr.year)
            .where(LeaveBalance.pending_days >= n)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InvalidStateError(
                "Leave balance does not hold the pending days for this request",
                payload={"employee_id": lr.employee_id, "year": lr.year, "days": n},
            )

        s.add(LeaveApprovalAction(
            leave_request_id=lr.id,
            action=new_status.lower(),
            comment=reason,
            acted_by_user_id=approver,
            acted_at=now,
        ))

    log.info("leave %s request=%s employee=%s days=%s", new_status.lower(), lr.id, lr.employee_id, n)
    return lr


def approve(request_id, approver: Optional[int] = None) -> LeaveRequest:
    return _decide(request_id, LEAVE_APPROVED, approver, None)


def reject(request_id, reason: Optional[str] = None, approver: Optional[int] = None) -> LeaveRequest:
    return _decide(request_id, LEAVE_REJECTED, approver, reason)


# ---------- command-level operations ----------

def apply_leave(employee_id, leave_type, start_date, end_date, reason=None, applied_by=None) -> dict:
    sd = parse_date(start_date)
    ed = parse_date(end_date)
    if not (sd and ed):
        raise ValidationError("Start date and end date are required")
    if sd > ed:
        raise ValidationError("Start date cannot be after end date")

    emp = _require_employee(employee_id)

    total_days = business_days_between(sd, ed)
    if total_days == 0:
        raise ValidationError("No working days in the selected date range")

    lr = apply(
        emp.id, sd.year, total_days,
        leave_type=leave_type, start_date=sd, end_date=ed,
        reason=reason, applied_by=applied_by,
    )
    return {"request_id": lr.id, "total_days": total_days, "status": lr.status}


def decide_leave(request_id, decision, reason=None, approver=None) -> LeaveRequest:
    d = (decision or "").strip().lower()
    if d in ("approved", "approve"):
        return approve(request_id, approver=approver)
    if d in ("rejected", "reject"):
        return reject(request_id, reason=reason, approver=approver)
    raise ValidationError("Invalid status. Must be 'Approved' or 'Rejected'")


# ---------- listing ----------

def list_requests(employee_id=None, status: Optional[str] = None, oldest_first: bool = False):
    q = LeaveRequest.query
    if employee_id:
        q = q.filter(LeaveRequest.employee_id == employee_id)
    if status:
        q = q.filter(func.lower(func.trim(LeaveRequest.status)) == status.strip().lower())
    order = LeaveRequest.created_at.asc() if oldest_first else LeaveRequest.created_at.desc()
    return q.order_by(order, LeaveRequest.id.asc() if oldest_first else LeaveRequest.id.desc()).all()


def pending_count() -> int:
    return (
        LeaveRequest.query
        .filter(func.lower(func.trim(LeaveRequest.status)) == "pending")
        .count()
    )
