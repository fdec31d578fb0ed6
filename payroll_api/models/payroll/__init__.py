# payroll_api/models/payroll/__init__.py
from payroll_api.extensions import db  # noqa

from .tax_rate import TaxRate
from .pay_run import PayrollRun, PayrollEntry

__all__ = [
    "TaxRate",
    "PayrollRun", "PayrollEntry",
]
