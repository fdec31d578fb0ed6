# payroll_api/blueprints/shifts.py
from flask import Blueprint, request

from payroll_api.common.auth import requires_perms, current_subject
from payroll_api.common.dates import iso
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, fail, json_body
from payroll_api.models.attendance import Shift
from payroll_api.models.shift_request import ShiftChangeRequest
from payroll_api.services import shift_service

bp = Blueprint("shifts", __name__, url_prefix="/api/v1/shifts")


def _t(v):
    return v.strftime("%H:%M:%S") if v else None


def _shift_row(s: Shift) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "start_time": _t(s.start_time),
        "end_time": _t(s.end_time),
        "is_overnight": s.is_overnight,
    }


def _request_row(r: ShiftChangeRequest) -> dict:
    emp = r.employee
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_name": emp.name if emp else None,
        "department": emp.department if emp else None,
        "request_date": iso(r.request_date),
        "current_shift_id": r.current_shift_id,
        "current_shift_name": r.current_shift.name if r.current_shift else None,
        "requested_shift_id": r.requested_shift_id,
        "requested_shift_name": r.requested_shift.name if r.requested_shift else None,
        "reason": r.reason,
        "status": r.status,
        "approved_by": r.approved_by_user_id,
        "approved_at": iso(r.approved_at),
        "rejection_reason": r.rejection_reason,
        "created_at": iso(r.created_at),
    }


def _own_employee_id() -> int:
    emp_id = current_subject().employee_id
    if emp_id is None:
        raise ValidationError("No employee profile is linked to this user")
    return int(emp_id)


# ---------- catalogue ----------
@bp.get("")
@requires_perms("shift.read")
def list_shifts():
    day = request.args.get("date")
    if day:
        rows = shift_service.available_shifts(current_subject().employee_id, day)
    else:
        rows = shift_service.list_shifts()
    return ok([_shift_row(s) for s in rows])


@bp.post("")
@requires_perms("shift.manage")
def create_shift():
    d = json_body()
    s = shift_service.create_shift(d.get("name"), d.get("start_time"), d.get("end_time"))
    return ok(_shift_row(s), 201)


# ---------- assignments ----------
@bp.post("/assign")
@requires_perms("shift.manage")
def assign():
    d = json_body()
    sa = shift_service.assign_shift(d.get("employee_id"), d.get("shift_id"), d.get("date"))
    return ok({"employee_id": sa.employee_id, "shift_id": sa.shift_id, "date": iso(sa.date)})


@bp.get("/assignments")
@requires_perms("shift.manage")
def assignments():
    day = request.args.get("date")
    if not day:
        return fail("Date is required.", 422)
    rows = shift_service.assignments_for_date(day)
    return ok([{
        "employee_id": emp.id,
        "employee_code": emp.code,
        "name": emp.name,
        "role": emp.role,
        "department": emp.department,
        "shift_id": shift.id if shift else None,
        "shift_name": shift.name if shift else None,
    } for emp, shift in rows])


@bp.get("/current/<day>")
@requires_perms("shift.read")
def current(day):
    s = shift_service.current_shift(_own_employee_id(), day)
    return ok(_shift_row(s) if s else None)


# ---------- change requests ----------
@bp.post("/requests")
@requires_perms("shift.request.create")
def submit_request():
    d = json_body()
    r = shift_service.submit_change_request(
        _own_employee_id(), d.get("requested_shift_id"), d.get("request_date"), d.get("reason"),
    )
    return ok({"request_id": r.id, **_request_row(r)}, 201)


@bp.get("/requests/mine")
@requires_perms("shift.request.create")
def my_requests():
    rows = shift_service.list_change_requests(employee_id=_own_employee_id())
    return ok([_request_row(r) for r in rows])


@bp.get("/requests")
@requires_perms("shift.request.approve")
def all_requests():
    rows = shift_service.list_change_requests(
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status"),
    )
    return ok([_request_row(r) for r in rows])


@bp.get("/requests/pending-count")
@requires_perms("shift.request.approve")
def pending_count():
    return ok({"count": shift_service.pending_change_count()})


@bp.put("/requests/<int:request_id>/status")
@requires_perms("shift.request.approve")
def decide(request_id: int):
    d = json_body()
    r = shift_service.decide_change_request(
        request_id, d.get("status"),
        approver=current_subject().user_id,
        rejection_reason=d.get("rejection_reason"),
    )
    return ok(_request_row(r))
