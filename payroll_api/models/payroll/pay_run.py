from datetime import datetime
from payroll_api.extensions import db

RUN_DRAFT = "Draft"
RUN_PROCESSING = "Processing"
RUN_COMPLETED = "Completed"
RUN_CANCELLED = "Cancelled"


class PayrollRun(db.Model):
    __tablename__ = "payroll_runs"

    id = db.Column(db.Integer, primary_key=True)
    run_date = db.Column(db.Date, nullable=False)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    total_employees = db.Column(db.Integer, nullable=False, default=0)
    total_gross_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_tax = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(
        db.Enum(RUN_DRAFT, RUN_PROCESSING, RUN_COMPLETED, RUN_CANCELLED, name="payroll_run_status_enum"),
        nullable=False,
        default=RUN_DRAFT,
    )

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    processed_at = db.Column(db.DateTime)

    entries = db.relationship(
        "PayrollEntry",
        back_populates="run",
        order_by="PayrollEntry.employee_id",
        lazy="select",
    )
    creator = db.relationship("User", lazy="joined")


class PayrollEntry(db.Model):
    __tablename__ = "payroll_entries"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    base_salary = db.Column(db.Numeric(14, 2), default=0)
    allowances = db.Column(db.Numeric(14, 2), default=0)
    deductions = db.Column(db.Numeric(14, 2), default=0)
    overtime_pay = db.Column(db.Numeric(14, 2), default=0)
    bonus = db.Column(db.Numeric(14, 2), default=0)
    gross_pay = db.Column(db.Numeric(14, 2), default=0)
    tax_amount = db.Column(db.Numeric(14, 2), default=0)
    net_pay = db.Column(db.Numeric(14, 2), default=0)

    working_days = db.Column(db.Integer, default=0)
    attendance_days = db.Column(db.Integer, default=0)
    overtime_days = db.Column(db.Integer, default=0)
    leave_days = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("run_id", "employee_id", name="uq_payroll_entry_run_emp"),
    )

    run = db.relationship("PayrollRun", back_populates="entries", lazy="joined")
    employee = db.relationship("Employee", lazy="joined")
