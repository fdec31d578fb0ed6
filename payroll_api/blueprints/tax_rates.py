# payroll_api/blueprints/tax_rates.py
from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.dates import to_int
from payroll_api.common.http import ok, json_body
from payroll_api.models.payroll.tax_rate import TaxRate
from payroll_api.services import tax_calculator

bp = Blueprint("tax_rates", __name__, url_prefix="/api/v1/payroll/tax-rates")


def _row(t: TaxRate) -> dict:
    return {
        "id": t.id,
        "tax_year": t.tax_year,
        "min_income": float(t.min_income),
        "max_income": float(t.max_income) if t.max_income is not None else None,
        "tax_rate": float(t.tax_rate),
        "tax_bracket_name": t.tax_bracket_name,
    }


@bp.get("")
@requires_perms("payroll.tax.read")
def list_rates():
    year = to_int(request.args.get("tax_year"), "tax_year")
    return ok([_row(t) for t in tax_calculator.list_tax_rates(year)])


@bp.post("")
@requires_perms("payroll.tax.write")
def add_rate():
    d = json_body()
    t = tax_calculator.add_tax_rate(
        d.get("tax_year"), d.get("min_income"), d.get("max_income"),
        d.get("tax_rate"), d.get("tax_bracket_name"),
    )
    return ok({"tax_rate_id": t.id, **_row(t)}, 201)
