from datetime import datetime
from payroll_api.extensions import db

LEAVE_PENDING = "Pending"
LEAVE_APPROVED = "Approved"
LEAVE_REJECTED = "Rejected"


class LeaveBalance(db.Model):
    """(total, used, pending) ledger for one employee and year."""
    __tablename__ = "leave_balances"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    total_days   = db.Column(db.Integer, nullable=False, default=30)
    used_days    = db.Column(db.Integer, nullable=False, default=0)
    pending_days = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "year", name="uq_leave_balance_emp_year"),
        db.CheckConstraint("used_days >= 0", name="ck_leave_balance_used_nonneg"),
        db.CheckConstraint("pending_days >= 0", name="ck_leave_balance_pending_nonneg"),
        db.CheckConstraint("used_days + pending_days <= total_days", name="ck_leave_balance_within_total"),
    )

    @property
    def available_days(self) -> int:
        return int(self.total_days) - int(self.used_days) - int(self.pending_days)


class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = db.Column(db.String(40), nullable=False, default="Annual")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    year = db.Column(db.Integer, nullable=False)          # ledger year the days are booked against
    total_days = db.Column(db.Integer, nullable=False)    # business days only
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=LEAVE_PENDING, index=True)

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", backref="leave_requests")
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])


class LeaveApprovalAction(db.Model):
    __tablename__ = "leave_approval_actions"
    id = db.Column(db.Integer, primary_key=True)
    leave_request_id = db.Column(db.Integer, db.ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    action = db.Column(db.String(20), nullable=False)  # applied|approved|rejected
    comment = db.Column(db.Text)
    acted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    acted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    acted_by = db.relationship("User")
