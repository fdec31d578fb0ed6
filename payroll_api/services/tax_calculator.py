# payroll_api/services/tax_calculator.py
"""
Monthly income tax.

The default path annualises the monthly gross and looks up ONE bracket rate
that is then applied to the whole annual income (flat, not marginal):

    annual <=  50,000  -> 15%
    annual <= 100,000  -> 25%
    otherwise          -> 35%

With PAYROLL_TAX_SOURCE = "table" the rate is looked up in the tax_rates
rows for the tax year instead (same flat semantics). If the table has no
row for that year / income, the built-in brackets are used.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from flask import current_app, has_app_context
from sqlalchemy import or_

from payroll_api.extensions import db
from payroll_api.common.errors import ValidationError
from payroll_api.common.dates import to_decimal, to_int
from payroll_api.models.payroll.tax_rate import TaxRate

log = logging.getLogger(__name__)

MONTHS = Decimal("12")

# (upper bound of annual income inclusive, rate); None = no upper bound
DEFAULT_BRACKETS = (
    (Decimal("50000"), Decimal("0.15")),
    (Decimal("100000"), Decimal("0.25")),
    (None, Decimal("0.35")),
)


def _dec(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or 0))


def bracket_rate(annual_income) -> Decimal:
    annual = _dec(annual_income)
    for upper, rate in DEFAULT_BRACKETS:
        if upper is None or annual <= upper:
            return rate
    return DEFAULT_BRACKETS[-1][1]


def table_rate(annual_income, tax_year: int) -> Optional[Decimal]:
    """Rate (as a fraction) of the tax_rates row covering the income, or None."""
    annual = _dec(annual_income)
    row = (
        TaxRate.query
        .filter(TaxRate.tax_year == tax_year)
        .filter(TaxRate.min_income <= annual)
        .filter(or_(TaxRate.max_income.is_(None), TaxRate.max_income >= annual))
        .order_by(TaxRate.min_income.desc())
        .first()
    )
    if row is None:
        return None
    return _dec(row.tax_rate) / Decimal("100")


def _tax_source() -> str:
    if not has_app_context():
        return "brackets"
    return (current_app.config.get("PAYROLL_TAX_SOURCE") or "brackets").lower()


def compute_monthly_tax(monthly_gross, tax_year: Optional[int] = None) -> Decimal:
    annual = _dec(monthly_gross) * MONTHS

    rate = None
    if tax_year is not None and _tax_source() == "table":
        rate = table_rate(annual, tax_year)
        if rate is None:
            log.warning("no tax_rates row for year=%s income=%s; using built-in brackets", tax_year, annual)
    if rate is None:
        rate = bracket_rate(annual)

    return annual * rate / MONTHS


# ---------- tax_rates table maintenance ----------

def list_tax_rates(tax_year: Optional[int] = None):
    q = TaxRate.query
    if tax_year:
        q = q.filter(TaxRate.tax_year == tax_year)
    return q.order_by(TaxRate.min_income.asc()).all()


def add_tax_rate(tax_year, min_income, max_income, tax_rate, tax_bracket_name) -> TaxRate:
    if not tax_year or min_income in (None, "") or tax_rate in (None, "") or not tax_bracket_name:
        raise ValidationError("Missing required fields: tax_year, min_income, tax_rate, tax_bracket_name")

    year = to_int(tax_year, "tax_year")
    lo = to_decimal(min_income, "min_income")
    hi = to_decimal(max_income, "max_income")
    rate = to_decimal(tax_rate, "tax_rate")
    if lo < 0:
        raise ValidationError("min_income must be >= 0")
    if hi is not None and hi < lo:
        raise ValidationError("max_income must be >= min_income")
    if rate < 0 or rate > 100:
        raise ValidationError("tax_rate must be a percentage between 0 and 100")

    row = TaxRate(
        tax_year=year,
        min_income=lo,
        max_income=hi,
        tax_rate=rate,
        tax_bracket_name=str(tax_bracket_name).strip(),
    )
    db.session.add(row)
    db.session.commit()
    log.info("tax rate added year=%s bracket=%s rate=%s", row.tax_year, row.tax_bracket_name, row.tax_rate)
    return row
