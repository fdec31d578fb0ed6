from datetime import datetime
from payroll_api.extensions import db

ATT_PRESENT = "Present"

TYPE_NORMAL = "Normal"
TYPE_OVERTIME = "Overtime"


class Shift(db.Model):
    __tablename__ = "shifts"
    id = db.Column(db.Integer, primary_key=True)
    name       = db.Column(db.String(60), unique=True, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time   = db.Column(db.Time, nullable=False)   # end < start => overnight
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_overnight(self) -> bool:
        return self.end_time < self.start_time


class ShiftAssignment(db.Model):
    __tablename__ = "shift_assignments"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    shift_id    = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="RESTRICT"), nullable=False, index=True)
    date        = db.Column(db.Date, nullable=False, index=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_shift_assignment_emp_date"),
    )

    shift = db.relationship("Shift", lazy="joined")


class AttendanceRecord(db.Model):
    """One row per (employee, date); attendance_type is decided at clock-in."""
    __tablename__ = "attendance"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=ATT_PRESENT)           # Present/Absent
    time_in = db.Column(db.Time, nullable=True)
    attendance_type = db.Column(db.String(16), nullable=False, default=TYPE_NORMAL)  # Normal/Overtime
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
    )


class CompanyCalendarDay(db.Model):
    """Company working-day calendar. Only the attendance percentage report reads it."""
    __tablename__ = "company_calendar"

    date = db.Column(db.Date, primary_key=True)
    is_working_day = db.Column(db.Boolean, nullable=False, default=True)
    note = db.Column(db.String(120))
