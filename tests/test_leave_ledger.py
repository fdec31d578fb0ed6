from datetime import date

import pytest
from sqlalchemy import update

from payroll_api.extensions import db
from payroll_api.common.errors import (
    ValidationError, NotFoundError, InsufficientBalanceError, InvalidStateError,
)
from payroll_api.models.leave import LeaveBalance, LeaveRequest, LeaveApprovalAction
from payroll_api.services import leave_ledger

# Mon..Fri
WEEK_START, WEEK_END = "2024-01-08", "2024-01-12"


def _balance(emp_id, year=2024):
    db.session.expire_all()
    return LeaveBalance.query.filter_by(employee_id=emp_id, year=year).one()


def _assert_ledger_invariant(bal):
    assert bal.used_days >= 0
    assert bal.pending_days >= 0
    assert bal.used_days + bal.pending_days <= bal.total_days
    assert bal.available_days >= 0


def test_balance_is_created_lazily_with_default_total(make_employee):
    emp = make_employee()
    got = leave_ledger.leave_balance(emp.id, 2024)
    assert got == {"employee_id": emp.id, "year": 2024, "total": 30, "used": 0, "pending": 0, "available": 30}


def test_default_total_follows_config(app, make_employee):
    app.config["PAYROLL_DEFAULT_LEAVE_DAYS"] = 12
    emp = make_employee()
    assert leave_ledger.leave_balance(emp.id, 2024)["total"] == 12


def test_apply_books_pending_days(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, "trip")

    assert res["total_days"] == 5
    bal = _balance(emp.id)
    assert (bal.used_days, bal.pending_days, bal.available_days) == (0, 5, 25)
    lr = db.session.get(LeaveRequest, res["request_id"])
    assert lr.status == "Pending"
    assert lr.year == 2024
    _assert_ledger_invariant(bal)


def test_apply_then_approve(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)
    lr = leave_ledger.approve(res["request_id"], approver=None)

    bal = _balance(emp.id)
    assert (bal.used_days, bal.pending_days) == (5, 0)
    assert lr.status == "Approved"
    assert lr.approved_at is not None
    actions = [a.action for a in LeaveApprovalAction.query.filter_by(leave_request_id=lr.id).order_by(LeaveApprovalAction.id)]
    assert actions == ["applied", "approved"]


def test_apply_then_reject(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Sick", WEEK_START, WEEK_END, None)
    lr = leave_ledger.reject(res["request_id"], reason="busy week")

    bal = _balance(emp.id)
    assert (bal.used_days, bal.pending_days, bal.available_days) == (0, 0, 30)
    assert lr.status == "Rejected"
    assert lr.rejection_reason == "busy week"


def test_over_request_leaves_balance_unchanged(make_employee):
    emp = make_employee()
    bal = leave_ledger.get_or_create_balance(emp.id, 2024)
    bal.total_days = 3
    db.session.commit()

    with pytest.raises(InsufficientBalanceError) as ei:
        leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)

    assert ei.value.available == 3
    assert ei.value.requested == 5
    assert "Available: 3 days, Requested: 5 days" in ei.value.message
    bal = _balance(emp.id)
    assert (bal.total_days, bal.used_days, bal.pending_days) == (3, 0, 0)
    assert LeaveRequest.query.count() == 0


def test_pending_days_count_against_availability(make_employee):
    emp = make_employee()
    bal = leave_ledger.get_or_create_balance(emp.id, 2024)
    bal.total_days = 7
    db.session.commit()

    leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)   # 5 pending
    with pytest.raises(InsufficientBalanceError):
        leave_ledger.apply_leave(emp.id, "Annual", "2024-01-15", "2024-01-17", None)  # 3 more
    leave_ledger.apply_leave(emp.id, "Annual", "2024-01-15", "2024-01-16", None)      # exactly 2

    bal = _balance(emp.id)
    assert bal.available_days == 0
    _assert_ledger_invariant(bal)


def test_second_decision_is_refused(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)
    leave_ledger.approve(res["request_id"])

    with pytest.raises(InvalidStateError):
        leave_ledger.approve(res["request_id"])
    with pytest.raises(InvalidStateError):
        leave_ledger.reject(res["request_id"])

    bal = _balance(emp.id)
    assert (bal.used_days, bal.pending_days) == (5, 0)


def test_stale_reader_loses_the_race(make_employee, monkeypatch):
    """Two approvers both saw Pending; only the first conditional UPDATE lands."""
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)
    leave_ledger.approve(res["request_id"])

    # the loser read the row before the winner committed
    monkeypatch.setattr(leave_ledger, "_is_pending", lambda status: True)
    with pytest.raises(InvalidStateError):
        leave_ledger.approve(res["request_id"])

    bal = _balance(emp.id)
    assert (bal.used_days, bal.pending_days) == (5, 0)
    assert LeaveApprovalAction.query.filter_by(action="approved").count() == 1


def test_status_check_ignores_case_and_whitespace(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)
    db.session.execute(
        update(LeaveRequest).where(LeaveRequest.id == res["request_id"]).values(status=" pending ")
    )
    db.session.commit()

    lr = leave_ledger.approve(res["request_id"])
    assert lr.status == "Approved"


def test_decide_leave_dispatch(make_employee):
    emp = make_employee()
    a = leave_ledger.apply_leave(emp.id, "Annual", WEEK_START, WEEK_END, None)
    b = leave_ledger.apply_leave(emp.id, "Annual", "2024-02-05", "2024-02-06", None)

    assert leave_ledger.decide_leave(a["request_id"], "Approved").status == "Approved"
    assert leave_ledger.decide_leave(b["request_id"], "rejected", reason="no").status == "Rejected"
    with pytest.raises(ValidationError):
        leave_ledger.decide_leave(a["request_id"], "maybe")


def test_weekend_only_range_is_refused(make_employee):
    emp = make_employee()
    with pytest.raises(ValidationError):
        leave_ledger.apply_leave(emp.id, "Annual", "2024-01-13", "2024-01-14", None)


def test_start_after_end_is_refused(make_employee):
    emp = make_employee()
    with pytest.raises(ValidationError):
        leave_ledger.apply_leave(emp.id, "Annual", WEEK_END, WEEK_START, None)


def test_unknown_request_and_employee(app):
    with pytest.raises(NotFoundError):
        leave_ledger.approve(12345)
    with pytest.raises(NotFoundError):
        leave_ledger.apply_leave(999, "Annual", WEEK_START, WEEK_END, None)


def test_listing_and_pending_count(make_employee):
    a, b = make_employee("A"), make_employee("B")
    r1 = leave_ledger.apply_leave(a.id, "Annual", WEEK_START, WEEK_END, None)
    leave_ledger.apply_leave(b.id, "Annual", "2024-02-05", "2024-02-06", None)
    leave_ledger.approve(r1["request_id"])

    assert leave_ledger.pending_count() == 1
    assert [r.employee_id for r in leave_ledger.list_requests(status="pending")] == [b.id]
    assert len(leave_ledger.list_requests(employee_id=a.id)) == 1
    assert len(leave_ledger.list_requests()) == 2


@pytest.mark.parametrize("leave_type", [7, ["Annual"], "x" * 41])
def test_leave_type_must_be_short_text(make_employee, leave_type):
    emp = make_employee()
    with pytest.raises(ValidationError):
        leave_ledger.apply_leave(emp.id, leave_type, WEEK_START, WEEK_END)
    assert LeaveRequest.query.count() == 0
    assert leave_ledger.leave_balance(emp.id, 2024)["pending"] == 0


def test_blank_leave_type_defaults_to_annual(make_employee):
    emp = make_employee()
    res = leave_ledger.apply_leave(emp.id, "  ", WEEK_START, WEEK_END)
    assert db.session.get(LeaveRequest, res["request_id"]).leave_type == "Annual"
    res = leave_ledger.apply_leave(emp.id, " Sick ", "2024-01-15", "2024-01-15")
    assert db.session.get(LeaveRequest, res["request_id"]).leave_type == "Sick"
