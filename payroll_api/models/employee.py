from datetime import datetime
from payroll_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    code  = db.Column(db.String(32), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name  = db.Column(db.String(160), nullable=False)
    role  = db.Column(db.String(40), default="employee", nullable=False)   # admin rows are never paid
    department = db.Column(db.String(80), nullable=True)

    doj = db.Column(db.Date, nullable=True)   # date of joining
    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_emp_status_role", "status", "role"),
    )

    @property
    def is_payroll_eligible(self) -> bool:
        return (self.status or "").lower() == "active" and (self.role or "").strip().lower() != "admin"
