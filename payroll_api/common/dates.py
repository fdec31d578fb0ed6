# payroll_api/common/dates.py
from __future__ import annotations

from datetime import datetime, date, time as _time
from decimal import Decimal, InvalidOperation

from payroll_api.common.errors import ValidationError


def parse_date(s) -> date | None:
    """
    Accepts:
      - date objects (returned as-is)
      - 'YYYY-MM-DD'  (canonical)
      - 'DD-MM-YYYY'  (legacy support)
    """
    if not s:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    for f in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(str(s).strip(), f).date()
        except ValueError:
            pass
    return None


def parse_time(s) -> _time | None:
    """'HH:MM' or 'HH:MM:SS' → time."""
    if s is None or s == "":
        return None
    if isinstance(s, _time):
        return s
    for f in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(str(s).strip(), f).time()
        except ValueError:
            pass
    return None


def require_date(value, field: str) -> date:
    d = parse_date(value)
    if d is None:
        raise ValidationError(f"{field} is required (YYYY-MM-DD)")
    return d


def require_time(value, field: str) -> _time:
    t = parse_time(value)
    if t is None:
        raise ValidationError(f"{field} is required (HH:MM or HH:MM:SS)")
    return t


def to_decimal(x, field: str, default=None) -> Decimal | None:
    if x is None or x == "":
        return default
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return d


def iso(v):
    return v.isoformat() if v is not None else None


def to_int(x, field: str, default=None) -> int | None:
    if x is None or x == "":
        return default
    try:
        return int(x)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
