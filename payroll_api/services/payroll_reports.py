# payroll_api/services/payroll_reports.py
from __future__ import annotations

from sqlalchemy import func

from payroll_api.extensions import db
from payroll_api.common.dates import parse_date
from payroll_api.models.payroll.pay_run import PayrollRun, RUN_COMPLETED


def _f(v):
    return float(v) if v is not None else 0.0


def payroll_summary(start=None, end=None) -> dict:
    """Totals over Completed runs; the run_date window applies only when both ends are given."""
    q = db.session.query(
        func.count(PayrollRun.id),
        func.sum(PayrollRun.total_employees),
        func.sum(PayrollRun.total_gross_pay),
        func.sum(PayrollRun.total_tax),
        func.sum(PayrollRun.total_net_pay),
        func.avg(PayrollRun.total_gross_pay),
        func.avg(PayrollRun.total_net_pay),
    ).filter(PayrollRun.status == RUN_COMPLETED)

    sd, ed = parse_date(start), parse_date(end)
    if sd and ed:
        q = q.filter(PayrollRun.run_date >= sd, PayrollRun.run_date <= ed)

    runs, emps, gross, tax, net, avg_gross, avg_net = q.one()
    return {
        "total_runs": int(runs or 0),
        "total_employees_processed": int(emps or 0),
        "total_gross_pay": _f(gross),
        "total_tax": _f(tax),
        "total_net_pay": _f(net),
        "avg_gross_pay": round(_f(avg_gross), 2),
        "avg_net_pay": round(_f(avg_net), 2),
    }
