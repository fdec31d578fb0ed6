# payroll_api/blueprints/leave.py
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import requires_perms, authorize, current_subject
from payroll_api.common.dates import iso, to_int
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, json_body
from payroll_api.models.leave import LeaveRequest
from payroll_api.services import leave_ledger

bp = Blueprint("leave", __name__, url_prefix="/api/v1/leave")


def _row(r: LeaveRequest) -> dict:
    emp = r.employee
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_name": emp.name if emp else None,
        "department": emp.department if emp else None,
        "leave_type": r.leave_type,
        "start_date": iso(r.start_date),
        "end_date": iso(r.end_date),
        "year": r.year,
        "total_days": r.total_days,
        "reason": r.reason,
        "status": r.status,
        "approved_by": r.approved_by_user_id,
        "approved_by_name": r.approved_by.full_name if r.approved_by else None,
        "approved_at": iso(r.approved_at),
        "rejection_reason": r.rejection_reason,
        "created_at": iso(r.created_at),
    }


def _own_employee_id(subject) -> int:
    if subject.employee_id is None:
        raise ValidationError("No employee profile is linked to this user")
    return int(subject.employee_id)


@bp.post("/apply")
@requires_perms("leave.request.create")
def apply_leave():
    d = json_body()
    subject = current_subject()
    res = leave_ledger.apply_leave(
        _own_employee_id(subject),
        d.get("leave_type") or "Annual",
        d.get("start_date"),
        d.get("end_date"),
        d.get("reason"),
        applied_by=subject.user_id,
    )
    return ok(res, 201)


@bp.put("/<int:request_id>/status")
@requires_perms("leave.request.approve")
def decide(request_id: int):
    d = json_body()
    lr = leave_ledger.decide_leave(
        request_id,
        d.get("status"),
        reason=d.get("rejection_reason"),
        approver=current_subject().user_id,
    )
    return ok(_row(lr))


@bp.get("/balance")
@jwt_required()
def balance():
    subject = current_subject()
    emp_id = to_int(request.args.get("employee_id"), "employee_id") or _own_employee_id(subject)
    authorize("leave.balance.read", {"employee_id": emp_id})
    year = to_int(request.args.get("year"), "year")
    return ok(leave_ledger.leave_balance(emp_id, year))


@bp.get("/my-requests")
@jwt_required()
def my_requests():
    emp_id = _own_employee_id(current_subject())
    return ok([_row(r) for r in leave_ledger.list_requests(employee_id=emp_id)])


@bp.get("/pending")
@requires_perms("leave.request.approve")
def pending():
    rows = leave_ledger.list_requests(status="pending", oldest_first=True)
    return ok([_row(r) for r in rows])


@bp.get("/all")
@requires_perms("leave.request.read", "leave.request.approve")
def all_requests():
    rows = leave_ledger.list_requests(
        employee_id=to_int(request.args.get("employee_id"), "employee_id"),
        status=request.args.get("status"),
    )
    return ok([_row(r) for r in rows])


@bp.get("/pending-count")
@requires_perms("leave.request.approve")
def pending_count():
    return ok({"count": leave_ledger.pending_count()})
