# payroll_api/services/salary_ledger.py
"""
Effective-dated salary records.

Invariant: for one employee the [effective_date, end_date] ranges never
overlap, and at most one record is open-ended (end_date NULL) or ends in the
future. set_salary closes the previous record and inserts the new one in the
same transaction.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from flask import current_app, has_app_context
from sqlalchemy import or_

from payroll_api.extensions import db, unit_of_work
from payroll_api.common.errors import ValidationError, NotFoundError
from payroll_api.common.dates import parse_date, to_decimal, to_int
from payroll_api.models.employee import Employee
from payroll_api.models.salary import SalaryRecord

log = logging.getLogger(__name__)

ZERO = Decimal("0")


def _default_currency() -> str:
    if has_app_context():
        return current_app.config.get("PAYROLL_CURRENCY", "USD")
    return "USD"


def _currency(value) -> str:
    """Three-letter ISO code, upper-cased; blank means the configured default."""
    if value is None or value == "":
        return _default_currency().upper()
    if not isinstance(value, str):
        raise ValidationError("currency must be a 3-letter code")
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha() or not code.isascii():
        raise ValidationError("currency must be a 3-letter code")
    return code


def _covering(q, as_of: date):
    return (
        q.filter(SalaryRecord.effective_date <= as_of)
        .filter(or_(SalaryRecord.end_date.is_(None), SalaryRecord.end_date >= as_of))
    )


def set_salary(
    employee_id,
    base_salary,
    allowances=0,
    deductions=0,
    effective_date=None,
    end_date=None,
    currency: Optional[str] = None,
) -> SalaryRecord:
    base = to_decimal(base_salary, "base_salary")
    eff = parse_date(effective_date)
    if not employee_id or base is None or eff is None:
        raise ValidationError("Missing required fields: employee_id, base_salary, effective_date")
    if base <= ZERO:
        raise ValidationError("base_salary must be greater than zero")

    allow = to_decimal(allowances, "allowances", ZERO)
    ded = to_decimal(deductions, "deductions", ZERO)
    if allow < ZERO or ded < ZERO:
        raise ValidationError("allowances and deductions must not be negative")
    cur = _currency(currency)

    end = None
    if end_date not in (None, ""):
        end = parse_date(end_date)
        if end is None:
            raise ValidationError("end_date must be YYYY-MM-DD")
        if end < eff:
            raise ValidationError("end_date must be on or after effective_date")

    emp = db.session.get(Employee, to_int(employee_id, "employee_id"))
    if emp is None:
        raise NotFoundError("Employee not found.")

    with unit_of_work() as s:
        # Serialise writers on this employee's timeline where the backend supports it.
        existing = (
            SalaryRecord.query
            .filter(SalaryRecord.employee_id == emp.id)
            .filter(or_(SalaryRecord.end_date.is_(None), SalaryRecord.end_date >= eff))
            .with_for_update()
            .all()
        )

        # Closing a record that starts on/after the new date would give it end < start.
        later = [r for r in existing if r.effective_date >= eff]
        if later:
            raise ValidationError(
                "A salary record already starts on or after effective_date",
                payload={"conflicting_ids": [r.id for r in later]},
            )

        close_on = eff - timedelta(days=1)
        for r in existing:
            r.end_date = close_on

        rec = SalaryRecord(
            employee_id=emp.id,
            base_salary=base,
            allowances=allow,
            deductions=ded,
            effective_date=eff,
            end_date=end,
            currency=cur,
        )
        s.add(rec)

    log.info(
        "salary set employee=%s base=%s effective=%s closed=%s",
        emp.id, base, eff, [r.id for r in existing],
    )
    return rec


def current_salary(employee_id, as_of: Optional[date] = None) -> Optional[SalaryRecord]:
    as_of = as_of or date.today()
    q = SalaryRecord.query.filter(SalaryRecord.employee_id == employee_id)
    return (
        _covering(q, as_of)
        .order_by(SalaryRecord.effective_date.desc())
        .first()
    )


def salary_history(employee_id) -> List[SalaryRecord]:
    return (
        SalaryRecord.query
        .filter(SalaryRecord.employee_id == employee_id)
        .order_by(SalaryRecord.effective_date.desc())
        .all()
    )


def list_salaries(employee_id=None, active_only: bool = False, as_of: Optional[date] = None):
    """
    active_only keeps records that have not ended yet (end_date NULL or >= as_of),
    which includes future-dated ones.
    """
    q = SalaryRecord.query
    if employee_id:
        q = q.filter(SalaryRecord.employee_id == employee_id)
    if active_only:
        as_of = as_of or date.today()
        q = q.filter(or_(SalaryRecord.end_date.is_(None), SalaryRecord.end_date >= as_of))
    return q.order_by(SalaryRecord.effective_date.desc()).all()


def salaries_as_of(employee_ids, as_of: date) -> dict:
    """{employee_id: SalaryRecord} for every employee with a record covering as_of."""
    if not employee_ids:
        return {}
    q = SalaryRecord.query.filter(SalaryRecord.employee_id.in_(list(employee_ids)))
    out = {}
    for rec in _covering(q, as_of).order_by(SalaryRecord.effective_date.desc()).all():
        out.setdefault(rec.employee_id, rec)
    return out
