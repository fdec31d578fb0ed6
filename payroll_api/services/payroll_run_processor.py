# payroll_api/services/payroll_run_processor.py
"""
Payroll run: one PayrollEntry per eligible employee for a pay period.

    daily_rate    = base_salary / working_days
    overtime_pay  = overtime_days * daily_rate * PAYROLL_OVERTIME_MULTIPLIER
    gross_pay     = present_days * daily_rate + allowances + overtime_pay - deductions
    tax_amount    = compute_monthly_tax(gross_pay)
    net_pay       = gross_pay - tax_amount

Shell, entries and totals are written in a single transaction; an exception
for any employee leaves no run behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import func, update

from payroll_api.extensions import db, unit_of_work
from payroll_api.common.errors import (
    ValidationError, NotFoundError, InvalidStateError, EmptyInputError, NoWorkingDaysError,
)
from payroll_api.common.dates import parse_date, to_int
from payroll_api.models.employee import Employee
from payroll_api.models.attendance import AttendanceRecord, ATT_PRESENT, TYPE_OVERTIME
from payroll_api.models.leave import LeaveRequest
from payroll_api.models.payroll.pay_run import (
    PayrollRun, PayrollEntry,
    RUN_DRAFT, RUN_PROCESSING, RUN_COMPLETED, RUN_CANCELLED,
)
from payroll_api.services.calendar_math import business_days_between
from payroll_api.services.salary_ledger import salaries_as_of
from payroll_api.services.tax_calculator import compute_monthly_tax

log = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.5")

OPEN_STATUSES = (RUN_DRAFT, RUN_PROCESSING)


def quantize(x) -> Decimal:
    return Decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def _overtime_multiplier() -> Decimal:
    if has_app_context():
        return Decimal(str(current_app.config.get("PAYROLL_OVERTIME_MULTIPLIER", DEFAULT_OVERTIME_MULTIPLIER)))
    return DEFAULT_OVERTIME_MULTIPLIER


@dataclass
class EntryFigures:
    base_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    tax_amount: Decimal
    net_pay: Decimal
    working_days: int
    attendance_days: int
    overtime_days: int
    leave_days: int


def compute_entry(
    base_salary, allowances, deductions,
    working_days: int, present_days: int, overtime_days: int, leave_days: int = 0,
    tax_year: Optional[int] = None,
) -> EntryFigures:
    """Money figures for one employee; amounts are rounded to cents."""
    if working_days <= 0:
        raise NoWorkingDaysError()
    base = Decimal(base_salary or 0)
    allow = Decimal(allowances or 0)
    ded = Decimal(deductions or 0)

    daily_rate = base / Decimal(working_days)
    overtime_pay = quantize(Decimal(overtime_days) * daily_rate * _overtime_multiplier())
    gross = quantize(Decimal(present_days) * daily_rate + allow + overtime_pay - ded)
    tax = quantize(compute_monthly_tax(gross, tax_year=tax_year))

    return EntryFigures(
        base_salary=quantize(base),
        allowances=quantize(allow),
        deductions=quantize(ded),
        overtime_pay=overtime_pay,
        gross_pay=gross,
        tax_amount=tax,
        net_pay=gross - tax,
        working_days=working_days,
        attendance_days=present_days,
        overtime_days=overtime_days,
        leave_days=leave_days,
    )


# ---------- period facts ----------

def eligible_employees() -> List[Employee]:
    active = (
        Employee.query
        .filter(func.lower(Employee.status) == "active")
        .order_by(Employee.id.asc())
        .all()
    )
    return [e for e in active if e.is_payroll_eligible]


def _attendance_counts(emp_ids, start: date, end: date) -> Tuple[Dict[int, int], Dict[int, int]]:
    in_period = (
        AttendanceRecord.employee_id.in_(emp_ids),
        AttendanceRecord.date >= start,
        AttendanceRecord.date <= end,
    )
    present = dict(
        db.session.query(AttendanceRecord.employee_id, func.count(AttendanceRecord.id))
        .filter(*in_period)
        .filter(AttendanceRecord.status == ATT_PRESENT)
        .group_by(AttendanceRecord.employee_id)
        .all()
    )
    overtime = dict(
        db.session.query(AttendanceRecord.employee_id, func.count(AttendanceRecord.id))
        .filter(*in_period)
        .filter(AttendanceRecord.attendance_type == TYPE_OVERTIME)
        .group_by(AttendanceRecord.employee_id)
        .all()
    )
    return present, overtime


def _leave_days(emp_ids, start: date, end: date) -> Dict[int, int]:
    # approved leave counted by start date only
    rows = (
        db.session.query(LeaveRequest.employee_id, func.coalesce(func.sum(LeaveRequest.total_days), 0))
        .filter(LeaveRequest.employee_id.in_(emp_ids))
        .filter(func.lower(func.trim(LeaveRequest.status)) == "approved")
        .filter(LeaveRequest.start_date >= start)
        .filter(LeaveRequest.start_date <= end)
        .group_by(LeaveRequest.employee_id)
        .all()
    )
    return {emp_id: int(total or 0) for emp_id, total in rows}


# ---------- commands ----------

def create_run(run_date=None, period_start=None, period_end=None, created_by: Optional[int] = None) -> PayrollRun:
    pstart = parse_date(period_start)
    pend = parse_date(period_end)
    if not (pstart and pend):
        raise ValidationError("Missing required fields: pay_period_start, pay_period_end")
    if pend < pstart:
        raise ValidationError("pay_period_end must be on or after pay_period_start")
    rdate = parse_date(run_date) if run_date else date.today()
    if rdate is None:
        raise ValidationError("run_date must be YYYY-MM-DD")

    employees = eligible_employees()
    if not employees:
        raise EmptyInputError()

    working_days = business_days_between(pstart, pend)
    if working_days == 0:
        raise NoWorkingDaysError()

    emp_ids = [e.id for e in employees]
    salaries = salaries_as_of(emp_ids, pstart)
    present, overtime = _attendance_counts(emp_ids, pstart, pend)
    leave = _leave_days(emp_ids, pstart, pend)

    with unit_of_work() as s:
        run = PayrollRun(
            run_date=rdate,
            period_start=pstart,
            period_end=pend,
            total_employees=len(employees),
            total_gross_pay=ZERO,
            total_tax=ZERO,
            total_net_pay=ZERO,
            status=RUN_DRAFT,
            created_by=created_by,
        )
        s.add(run)
        s.flush()

        total_gross = total_tax = total_net = ZERO
        for emp in employees:
            sal = salaries.get(emp.id)
            fig = compute_entry(
                sal.base_salary if sal else ZERO,
                sal.allowances if sal else ZERO,
                sal.deductions if sal else ZERO,
                working_days=working_days,
                present_days=int(present.get(emp.id, 0)),
                overtime_days=int(overtime.get(emp.id, 0)),
                leave_days=leave.get(emp.id, 0),
                tax_year=pstart.year,
            )
            s.add(PayrollEntry(
                run_id=run.id,
                employee_id=emp.id,
                base_salary=fig.base_salary,
                allowances=fig.allowances,
                deductions=fig.deductions,
                overtime_pay=fig.overtime_pay,
                bonus=ZERO,
                gross_pay=fig.gross_pay,
                tax_amount=fig.tax_amount,
                net_pay=fig.net_pay,
                working_days=fig.working_days,
                attendance_days=fig.attendance_days,
                overtime_days=fig.overtime_days,
                leave_days=fig.leave_days,
            ))
            total_gross += fig.gross_pay
            total_tax += fig.tax_amount
            total_net += fig.net_pay

        run.total_gross_pay = total_gross
        run.total_tax = total_tax
        run.total_net_pay = total_net

    log.info(
        "payroll run created id=%s period=%s..%s employees=%s gross=%s tax=%s net=%s",
        run.id, pstart, pend, len(employees), total_gross, total_tax, total_net,
    )
    return run


def _require_run(run_id) -> PayrollRun:
    run = db.session.get(PayrollRun, to_int(run_id, "run_id"))
    if run is None:
        raise NotFoundError("Payroll run not found.")
    return run


def _transition(run_id, new_status: str, **values) -> PayrollRun:
    run = _require_run(run_id)
    with unit_of_work() as s:
        res = s.execute(
            update(PayrollRun)
            .where(PayrollRun.id == run.id)
            .where(PayrollRun.status.in_(OPEN_STATUSES))
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            s.refresh(run)
            raise InvalidStateError(
                f"Payroll run in status '{run.status}' cannot move to '{new_status}'",
                payload={"status": run.status, "allowed": list(OPEN_STATUSES)},
            )
    log.info("payroll run %s -> %s", run.id, new_status)
    return run


def process_run(run_id) -> PayrollRun:
    return _transition(run_id, RUN_COMPLETED, processed_at=datetime.utcnow())


def cancel_run(run_id) -> PayrollRun:
    return _transition(run_id, RUN_CANCELLED)


# ---------- reads ----------

def get_run(run_id) -> Tuple[PayrollRun, List[PayrollEntry]]:
    run = _require_run(run_id)
    entries = (
        PayrollEntry.query
        .filter(PayrollEntry.run_id == run.id)
        .order_by(PayrollEntry.employee_id.asc())
        .all()
    )
    return run, entries


def list_runs(status: Optional[str] = None, start=None, end=None):
    q = PayrollRun.query
    if status:
        q = q.filter(PayrollRun.status == status)
    sd, ed = parse_date(start), parse_date(end)
    if sd:
        q = q.filter(PayrollRun.run_date >= sd)
    if ed:
        q = q.filter(PayrollRun.run_date <= ed)
    return q.order_by(PayrollRun.run_date.desc(), PayrollRun.id.desc()).all()
