# payroll_api/blueprints/salaries.py
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import requires_perms, authorize
from payroll_api.common.dates import iso, parse_date, to_int
from payroll_api.common.http import ok, json_body
from payroll_api.models.salary import SalaryRecord
from payroll_api.services import salary_ledger

bp = Blueprint("salaries", __name__, url_prefix="/api/v1/payroll/salaries")


def salary_row(r: SalaryRecord) -> dict:
    emp = r.employee
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_name": emp.name if emp else None,
        "department": emp.department if emp else None,
        "base_salary": float(r.base_salary),
        "allowances": float(r.allowances or 0),
        "deductions": float(r.deductions or 0),
        "currency": r.currency,
        "effective_date": iso(r.effective_date),
        "end_date": iso(r.end_date),
        "created_at": iso(r.created_at),
    }


@bp.get("")
@requires_perms("payroll.salary.read")
def list_salaries():
    emp_id = to_int(request.args.get("employee_id"), "employee_id")
    active_only = (request.args.get("active_only") or "").lower() in ("1", "true", "yes")
    as_of = parse_date(request.args.get("as_of"))
    rows = salary_ledger.list_salaries(emp_id, active_only=active_only, as_of=as_of)
    return ok([salary_row(r) for r in rows])


@bp.post("")
@requires_perms("payroll.salary.write")
def create_salary():
    d = json_body()
    rec = salary_ledger.set_salary(
        employee_id=d.get("employee_id"),
        base_salary=d.get("base_salary"),
        allowances=d.get("allowances", 0),
        deductions=d.get("deductions", 0),
        effective_date=d.get("effective_date"),
        end_date=d.get("end_date"),
        currency=d.get("currency"),
    )
    return ok({"salary_id": rec.id, **salary_row(rec)}, 201)


@bp.get("/current/<int:employee_id>")
@jwt_required()
def current_salary(employee_id: int):
    authorize("payroll.salary.read", {"employee_id": employee_id})
    as_of = parse_date(request.args.get("as_of"))
    rec = salary_ledger.current_salary(employee_id, as_of)
    return ok(salary_row(rec) if rec else None)
