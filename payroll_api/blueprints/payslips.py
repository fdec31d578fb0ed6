# payroll_api/blueprints/payslips.py
from flask import Blueprint
from flask_jwt_extended import jwt_required

from payroll_api.common.auth import authorize
from payroll_api.common.http import ok
from payroll_api.services import payslip_service

bp = Blueprint("payslips", __name__, url_prefix="/api/v1/payroll/payslips")


@bp.get("/<int:employee_id>")
@jwt_required()
def employee_payslips(employee_id: int):
    authorize("payroll.payslip.read", {"employee_id": employee_id})
    return ok(payslip_service.get_payslips(employee_id))


@bp.get("/<int:payslip_id>/download")
@jwt_required()
def download_payslip(payslip_id: int):
    slip = payslip_service.get_payslip(payslip_id)
    authorize("payroll.payslip.read", slip)
    return ok(slip)
