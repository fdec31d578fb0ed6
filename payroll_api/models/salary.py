from datetime import datetime
from payroll_api.extensions import db

class SalaryRecord(db.Model):
    """
    Effective-dated salary for one employee.

    A record covers [effective_date, end_date]; end_date NULL means open-ended.
    Rows are never deleted: a newer record closes the previous one by setting
    its end_date to the day before the new effective_date.
    """
    __tablename__ = "employee_salaries"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    base_salary = db.Column(db.Numeric(14, 2), nullable=False)
    allowances  = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    deductions  = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    currency    = db.Column(db.String(3), nullable=False, default="USD")

    effective_date = db.Column(db.Date, nullable=False)
    end_date       = db.Column(db.Date, nullable=True)  # null = open-ended

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_emp_salary_range", "employee_id", "effective_date", "end_date"),
    )

    employee = db.relationship("Employee", lazy="joined")
