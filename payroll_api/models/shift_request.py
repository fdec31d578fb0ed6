from datetime import datetime
from payroll_api.extensions import db

class ShiftChangeRequest(db.Model):
    __tablename__ = "shift_change_requests"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    current_shift_id   = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)
    requested_shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)
    request_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="Pending", index=True)  # Pending|Approved|Rejected

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
    current_shift = db.relationship("Shift", foreign_keys=[current_shift_id], lazy="joined")
    requested_shift = db.relationship("Shift", foreign_keys=[requested_shift_id], lazy="joined")
