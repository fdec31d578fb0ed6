# payroll_api/services/attendance_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, extract
from sqlalchemy.exc import IntegrityError

from payroll_api.extensions import db
from payroll_api.common.errors import NotFoundError
from payroll_api.common.dates import require_date, require_time, to_int
from payroll_api.models.employee import Employee
from payroll_api.models.attendance import (
    AttendanceRecord, ShiftAssignment, CompanyCalendarDay,
    ATT_PRESENT, TYPE_OVERTIME,
)
from payroll_api.services.shift_classifier import classify

log = logging.getLogger(__name__)


def _assigned_shift(employee_id: int, d: date):
    sa = ShiftAssignment.query.filter_by(employee_id=employee_id, date=d).first()
    return sa.shift if sa else None


def record_clock_in(employee_id, on_date=None, time_in=None) -> AttendanceRecord:
    """
    Upsert the (employee, date) row as Present.

    A second clock-in keeps the first time_in but the type is recomputed,
    so a shift assigned after the first punch is honoured.
    """
    emp_id = to_int(employee_id, "employee_id")
    if db.session.get(Employee, emp_id) is None:
        raise NotFoundError("Employee not found.")

    now = datetime.now()
    d = require_date(on_date, "date") if on_date else now.date()
    t = require_time(time_in, "time_in") if time_in else now.time().replace(microsecond=0)

    rec = AttendanceRecord.query.filter_by(employee_id=emp_id, date=d).first()
    if rec is None:
        rec = AttendanceRecord(employee_id=emp_id, date=d)
        db.session.add(rec)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            rec = AttendanceRecord.query.filter_by(employee_id=emp_id, date=d).one()

    rec.status = ATT_PRESENT
    if rec.time_in is None:
        rec.time_in = t
    rec.attendance_type = classify(rec.time_in, _assigned_shift(emp_id, d))
    db.session.commit()

    log.info("clock-in employee=%s date=%s time_in=%s type=%s", emp_id, d, rec.time_in, rec.attendance_type)
    return rec


def list_attendance(employee_id=None, start=None, end=None):
    q = AttendanceRecord.query
    if employee_id:
        q = q.filter(AttendanceRecord.employee_id == employee_id)
    if start:
        q = q.filter(AttendanceRecord.date >= start)
    if end:
        q = q.filter(AttendanceRecord.date <= end)
    return q.order_by(AttendanceRecord.date.desc(), AttendanceRecord.employee_id.asc()).all()


def overtime_count(employee_id, year: Optional[int] = None) -> int:
    year = year or date.today().year
    return (
        AttendanceRecord.query
        .filter(AttendanceRecord.employee_id == employee_id)
        .filter(AttendanceRecord.attendance_type == TYPE_OVERTIME)
        .filter(extract("year", AttendanceRecord.date) == year)
        .count()
    )


def attendance_percentage(employee_id, year: Optional[int] = None, as_of: Optional[date] = None) -> int:
    """Present days on company working days / company working days so far, 0..100."""
    as_of = as_of or date.today()
    year = year or as_of.year
    start = date(year, 1, 1)

    working = (
        db.session.query(func.count(CompanyCalendarDay.date))
        .filter(CompanyCalendarDay.is_working_day.is_(True))
        .filter(CompanyCalendarDay.date >= start)
        .filter(CompanyCalendarDay.date <= as_of)
        .scalar()
    ) or 0
    if working == 0:
        return 0

    present = (
        db.session.query(func.count(AttendanceRecord.id))
        .join(CompanyCalendarDay, CompanyCalendarDay.date == AttendanceRecord.date)
        .filter(AttendanceRecord.employee_id == employee_id)
        .filter(AttendanceRecord.status == ATT_PRESENT)
        .filter(CompanyCalendarDay.is_working_day.is_(True))
        .filter(AttendanceRecord.date >= start)
        .filter(AttendanceRecord.date <= as_of)
        .scalar()
    ) or 0

    # half-up like SQL ROUND
    return int((200 * present + working) // (2 * working))


def set_calendar_day(d, is_working_day: bool = True, note: Optional[str] = None) -> CompanyCalendarDay:
    d = require_date(d, "date")
    row = db.session.get(CompanyCalendarDay, d)
    if row is None:
        row = CompanyCalendarDay(date=d)
        db.session.add(row)
    row.is_working_day = bool(is_working_day)
    row.note = note
    db.session.commit()
    return row
