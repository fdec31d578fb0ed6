# payroll_api/blueprints/pay_runs.py
from flask import Blueprint, request

from payroll_api.common.auth import requires_perms, current_subject
from payroll_api.common.dates import iso
from payroll_api.common.http import ok, json_body
from payroll_api.common.paging import paginate
from payroll_api.models.payroll.pay_run import PayrollRun, PayrollEntry
from payroll_api.services import payroll_run_processor as runs

bp = Blueprint("pay_runs", __name__, url_prefix="/api/v1/payroll/runs")


def _row_run(r: PayrollRun) -> dict:
    return {
        "id": r.id,
        "run_date": iso(r.run_date),
        "pay_period_start": iso(r.period_start),
        "pay_period_end": iso(r.period_end),
        "total_employees": r.total_employees,
        "total_gross_pay": float(r.total_gross_pay or 0),
        "total_tax": float(r.total_tax or 0),
        "total_net_pay": float(r.total_net_pay or 0),
        "status": r.status,
        "created_by": r.created_by,
        "created_by_name": r.creator.full_name if r.creator else None,
        "created_at": iso(r.created_at),
        "processed_at": iso(r.processed_at),
    }


def _row_entry(x: PayrollEntry) -> dict:
    emp = x.employee
    return {
        "id": x.id,
        "payroll_run_id": x.run_id,
        "employee_id": x.employee_id,
        "employee_code": emp.code if emp else None,
        "employee_name": emp.name if emp else None,
        "department": emp.department if emp else None,
        "base_salary": float(x.base_salary or 0),
        "allowances": float(x.allowances or 0),
        "deductions": float(x.deductions or 0),
        "overtime_pay": float(x.overtime_pay or 0),
        "bonus": float(x.bonus or 0),
        "gross_pay": float(x.gross_pay or 0),
        "tax_amount": float(x.tax_amount or 0),
        "net_pay": float(x.net_pay or 0),
        "working_days": x.working_days,
        "attendance_days": x.attendance_days,
        "overtime_days": x.overtime_days,
        "leave_days": x.leave_days,
    }


@bp.post("")
@requires_perms("payroll.run.write")
def create_run():
    d = json_body()
    run = runs.create_run(
        run_date=d.get("run_date"),
        period_start=d.get("pay_period_start") or d.get("period_start"),
        period_end=d.get("pay_period_end") or d.get("period_end"),
        created_by=current_subject().user_id,
    )
    return ok({
        "payroll_run_id": run.id,
        "total_employees": run.total_employees,
        "total_gross_pay": float(run.total_gross_pay),
        "total_tax": float(run.total_tax),
        "total_net_pay": float(run.total_net_pay),
        "status": run.status,
    }, 201)


@bp.get("")
@requires_perms("payroll.run.read")
def list_runs():
    rows = runs.list_runs(
        status=request.args.get("status"),
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
    )
    return ok([_row_run(r) for r in rows])


@bp.get("/<int:run_id>")
@requires_perms("payroll.run.read")
def get_run(run_id: int):
    run, entries = runs.get_run(run_id)
    return ok({"run": _row_run(run), "entries": [_row_entry(x) for x in entries]})


@bp.get("/<int:run_id>/entries")
@requires_perms("payroll.run.read")
def list_entries(run_id: int):
    run, _ = runs.get_run(run_id)
    q = PayrollEntry.query.filter_by(run_id=run.id).order_by(PayrollEntry.employee_id.asc())
    rows, meta = paginate(q)
    return ok([_row_entry(x) for x in rows], **meta)


@bp.put("/<int:run_id>/process")
@requires_perms("payroll.run.write")
def process_run(run_id: int):
    return ok(_row_run(runs.process_run(run_id)))


@bp.put("/<int:run_id>/cancel")
@requires_perms("payroll.run.write")
def cancel_run(run_id: int):
    return ok(_row_run(runs.cancel_run(run_id)))
