# payroll_api/services/payslip_service.py
from __future__ import annotations

import calendar
from typing import Any, Dict, List

from payroll_api.extensions import db
from payroll_api.common.errors import NotFoundError
from payroll_api.common.dates import iso, to_int
from payroll_api.models.payroll.pay_run import PayrollRun, PayrollEntry


def _money(v) -> float:
    return float(v or 0)


def pay_period_label(period_start) -> str:
    """'M/YYYY' of the period start, e.g. '3/2024'."""
    return f"{period_start.month}/{period_start.year}"


def payslip_row(entry: PayrollEntry, run: PayrollRun) -> Dict[str, Any]:
    emp = entry.employee
    ps = run.period_start
    return {
        "id": entry.id,
        "payroll_run_id": run.id,
        "employee_id": entry.employee_id,
        "employee_name": emp.name if emp else None,
        "department": emp.department if emp else None,
        "position": emp.role if emp else None,
        "base_salary": _money(entry.base_salary),
        "allowances": _money(entry.allowances),
        "deductions": _money(entry.deductions),
        "overtime_pay": _money(entry.overtime_pay),
        "bonus": _money(entry.bonus),
        "gross_pay": _money(entry.gross_pay),
        "tax_amount": _money(entry.tax_amount),
        "net_pay": _money(entry.net_pay),
        "working_days": entry.working_days,
        "attendance_days": entry.attendance_days,
        "overtime_days": entry.overtime_days,
        "leave_days": entry.leave_days,
        "processed_at": iso(entry.created_at),
        "pay_period": pay_period_label(ps),
        "pay_period_start": iso(ps),
        "pay_period_end": iso(run.period_end),
        "status": run.status,
        "description": f"Payroll for {calendar.month_name[ps.month]} {ps.year}",
    }


def get_payslips(employee_id) -> List[Dict[str, Any]]:
    """Every payroll entry of the employee, newest first."""
    emp_id = to_int(employee_id, "employee_id")
    rows = (
        db.session.query(PayrollEntry, PayrollRun)
        .join(PayrollRun, PayrollRun.id == PayrollEntry.run_id)
        .filter(PayrollEntry.employee_id == emp_id)
        .order_by(PayrollEntry.created_at.desc(), PayrollEntry.id.desc())
        .all()
    )
    return [payslip_row(e, r) for e, r in rows]


def get_payslip(entry_id) -> Dict[str, Any]:
    entry = db.session.get(PayrollEntry, to_int(entry_id, "payslip_id"))
    if entry is None:
        raise NotFoundError("Payslip not found.")
    return payslip_row(entry, entry.run)
