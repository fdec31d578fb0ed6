# payroll_api/blueprints/payroll_reports.py
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from payroll_api.blueprints.salaries import salary_row
from payroll_api.common.auth import requires_perms, authorize
from payroll_api.common.http import ok
from payroll_api.services import payroll_reports, salary_ledger

bp = Blueprint("payroll_reports", __name__, url_prefix="/api/v1/payroll/reports")


@bp.get("/summary")
@requires_perms("payroll.report.read")
def summary():
    return ok(payroll_reports.payroll_summary(
        request.args.get("start_date"), request.args.get("end_date"),
    ))


@bp.get("/salary-history/<int:employee_id>")
@jwt_required()
def salary_history(employee_id: int):
    authorize("payroll.salary.read", {"employee_id": employee_id})
    rows = salary_ledger.salary_history(employee_id)
    return ok([salary_row(r) for r in rows])
