# payroll_api/services/shift_classifier.py
from __future__ import annotations

from datetime import time as _time

from payroll_api.models.attendance import TYPE_NORMAL, TYPE_OVERTIME


def in_shift_window(time_in: _time, start: _time, end: _time) -> bool:
    """
    Regular shift (start <= end): start <= t <= end.
    Overnight shift (end < start): the window wraps midnight, so t >= start or t <= end.
    """
    if start <= end:
        return start <= time_in <= end
    return time_in >= start or time_in <= end


def classify(time_in: _time, shift=None) -> str:
    """
    Attendance type for a clock-in. `shift` is anything with start_time/end_time
    (a Shift row) or None when the employee has no assignment for the day.
    """
    if shift is None:
        return TYPE_NORMAL
    return TYPE_NORMAL if in_shift_window(time_in, shift.start_time, shift.end_time) else TYPE_OVERTIME
