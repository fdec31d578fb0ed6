# payroll_api/blueprints/attendance.py
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import requires_perms, authorize, current_subject
from payroll_api.common.dates import iso, parse_date, to_int
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, json_body
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.services import attendance_service

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


def _row(a: AttendanceRecord) -> dict:
    return {
        "id": a.id,
        "employee_id": a.employee_id,
        "date": iso(a.date),
        "status": a.status,
        "time_in": a.time_in.strftime("%H:%M:%S") if a.time_in else None,
        "attendance_type": a.attendance_type,
    }


@bp.post("/clock-in")
@requires_perms("attendance.clockin")
def clock_in():
    d = json_body()
    subject = current_subject()
    emp_id = to_int(d.get("employee_id"), "employee_id")
    if emp_id is None or emp_id == subject.employee_id:
        if subject.employee_id is None:
            raise ValidationError("No employee profile is linked to this user")
        emp_id = int(subject.employee_id)
    else:
        # recording for someone else needs the attendance desk permission
        authorize("attendance.calendar.manage")
    rec = attendance_service.record_clock_in(emp_id, d.get("date"), d.get("time_in"))
    return ok(_row(rec))


@bp.get("/records")
@jwt_required()
def records():
    subject = current_subject()
    emp_id = to_int(request.args.get("employee_id"), "employee_id") or subject.employee_id
    authorize("attendance.read", {"employee_id": emp_id})
    rows = attendance_service.list_attendance(
        emp_id, parse_date(request.args.get("from")), parse_date(request.args.get("to")),
    )
    return ok([_row(a) for a in rows])


@bp.get("/overtime-count/<int:employee_id>")
@jwt_required()
def overtime_count(employee_id: int):
    authorize("attendance.read", {"employee_id": employee_id})
    year = to_int(request.args.get("year"), "year")
    return ok({"overtime_count": attendance_service.overtime_count(employee_id, year)})


@bp.get("/percentage/<int:employee_id>")
@jwt_required()
def percentage(employee_id: int):
    authorize("attendance.read", {"employee_id": employee_id})
    year = to_int(request.args.get("year"), "year")
    as_of = parse_date(request.args.get("as_of"))
    return ok({"attendance_percentage": attendance_service.attendance_percentage(employee_id, year, as_of)})


@bp.put("/calendar/<day>")
@requires_perms("attendance.calendar.manage")
def set_calendar_day(day):
    d = json_body()
    row = attendance_service.set_calendar_day(day, d.get("is_working_day", True), d.get("note"))
    return ok({"date": iso(row.date), "is_working_day": row.is_working_day, "note": row.note})
