# payroll_api/services/calendar_math.py
from __future__ import annotations

from datetime import date, timedelta


def is_business_day(d: date) -> bool:
    """Mon..Fri. No holiday calendar is consulted here."""
    return d.weekday() < 5


def business_days_between(start: date, end: date) -> int:
    """
    Count Mon–Fri days in [start, end], both ends inclusive.
    Returns 0 when start > end.
    """
    if start is None or end is None or start > end:
        return 0

    span = (end - start).days + 1
    full_weeks, rest = divmod(span, 7)
    count = full_weeks * 5

    # leftover days after the whole weeks
    d = start + timedelta(days=full_weeks * 7)
    for _ in range(rest):
        if is_business_day(d):
            count += 1
        d += timedelta(days=1)
    return count
