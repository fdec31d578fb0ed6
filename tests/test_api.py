from datetime import date, timedelta

from payroll_api.models.attendance import TYPE_OVERTIME
from payroll_api.services import salary_ledger


def _weekdays(start, end):
    d = start
    while d <= end:
        if d.weekday() < 5:
            yield d
        d += timedelta(days=1)


def test_hr_creates_salary_and_employee_reads_own(client, auth_headers, make_employee):
    emp = make_employee("Ann")
    other = make_employee("Bob")

    r = client.post("/api/v1/payroll/salaries", headers=auth_headers("hr"), json={
        "employee_id": emp.id, "base_salary": 3000, "allowances": 200,
        "deductions": 50, "effective_date": "2024-01-01",
    })
    assert r.status_code == 201
    assert r.get_json()["data"]["salary_id"]

    mine = client.get(f"/api/v1/payroll/salaries/current/{emp.id}", headers=auth_headers("employee", emp))
    assert mine.status_code == 200
    assert mine.get_json()["data"]["allowances"] == 200.0

    theirs = client.get(f"/api/v1/payroll/salaries/current/{other.id}", headers=auth_headers("employee", emp))
    assert theirs.status_code == 403
    assert theirs.get_json()["error"]["code"] == "FORBIDDEN"


def test_employee_cannot_write_salaries(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/payroll/salaries", headers=auth_headers("employee", emp), json={
        "employee_id": emp.id, "base_salary": 1,
    })
    assert r.status_code == 403


def test_invalid_salary_is_422(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/payroll/salaries", headers=auth_headers("hr"), json={
        "employee_id": emp.id, "base_salary": -5, "effective_date": "2024-01-01",
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_leave_apply_and_single_approval(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/leave/apply", headers=auth_headers("employee", emp), json={
        "leave_type": "Annual", "start_date": "2024-03-04", "end_date": "2024-03-08", "reason": "trip",
    })
    assert r.status_code == 201
    body = r.get_json()["data"]
    assert body["total_days"] == 5
    req_id = body["request_id"]

    hr = auth_headers("hr")
    first = client.put(f"/api/v1/leave/{req_id}/status", headers=hr, json={"status": "Approved"})
    assert first.status_code == 200
    assert first.get_json()["data"]["status"] == "Approved"

    second = client.put(f"/api/v1/leave/{req_id}/status", headers=hr, json={"status": "Approved"})
    assert second.status_code == 409
    assert second.get_json()["error"]["code"] == "INVALID_STATE"

    bal = client.get("/api/v1/leave/balance?year=2024", headers=auth_headers("employee", emp))
    assert bal.get_json()["data"]["used"] == 5
    assert bal.get_json()["data"]["available"] == 25


def test_leave_over_balance_is_rejected(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/leave/apply", headers=auth_headers("employee", emp), json={
        "start_date": "2024-01-01", "end_date": "2024-03-29",
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "INSUFFICIENT_BALANCE"


def test_employee_cannot_approve_leave(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.get("/api/v1/leave/pending", headers=auth_headers("employee", emp))
    assert r.status_code == 403


def test_payroll_run_over_http(client, auth_headers, make_employee, mark_attendance):
    emp = make_employee()
    salary_ledger.set_salary(emp.id, 3000, 200, 50, "2024-01-01")
    days = list(_weekdays(date(2024, 3, 4), date(2024, 3, 29)))
    mark_attendance(emp.id, days[:16])
    mark_attendance(emp.id, days[16:18], attendance_type=TYPE_OVERTIME)

    hr = auth_headers("hr")
    r = client.post("/api/v1/payroll/runs", headers=hr, json={
        "run_date": "2024-03-31", "pay_period_start": "2024-03-04", "pay_period_end": "2024-03-29",
    })
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["status"] == "Draft"
    assert data["total_net_pay"] == 2805.0
    run_id = data["payroll_run_id"]

    detail = client.get(f"/api/v1/payroll/runs/{run_id}", headers=hr).get_json()["data"]
    assert detail["entries"][0]["overtime_pay"] == 450.0

    page = client.get(f"/api/v1/payroll/runs/{run_id}/entries?size=10", headers=hr)
    assert page.status_code == 200
    assert len(page.get_json()["data"]) == 1

    done = client.put(f"/api/v1/payroll/runs/{run_id}/process", headers=hr)
    assert done.get_json()["data"]["status"] == "Completed"
    again = client.put(f"/api/v1/payroll/runs/{run_id}/cancel", headers=hr)
    assert again.status_code == 409

    slips = client.get(f"/api/v1/payroll/payslips/{emp.id}", headers=auth_headers("employee", emp))
    assert slips.status_code == 200
    slip = slips.get_json()["data"][0]
    assert slip["pay_period"] == "3/2024"

    summary = client.get("/api/v1/payroll/reports/summary", headers=auth_headers("finance"))
    assert summary.get_json()["data"]["total_runs"] == 1


def test_payslip_of_someone_else_is_forbidden(client, auth_headers, make_employee):
    a, b = make_employee("A"), make_employee("B")
    r = client.get(f"/api/v1/payroll/payslips/{b.id}", headers=auth_headers("employee", a))
    assert r.status_code == 403


def test_weekend_only_period_has_no_working_days(client, auth_headers, make_employee):
    emp = make_employee()
    salary_ledger.set_salary(emp.id, 3000, 0, 0, "2024-01-01")
    r = client.post("/api/v1/payroll/runs", headers=auth_headers("hr"), json={
        "pay_period_start": "2024-03-09", "pay_period_end": "2024-03-10",
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "NO_WORKING_DAYS"


def test_unknown_run_is_404(client, auth_headers):
    r = client.get("/api/v1/payroll/runs/999", headers=auth_headers("finance"))
    assert r.status_code == 404


def test_clock_in_and_records(client, auth_headers, make_employee):
    emp = make_employee()
    h = auth_headers("employee", emp)
    r = client.post("/api/v1/attendance/clock-in", headers=h, json={"date": "2024-03-04", "time_in": "09:05"})
    assert r.status_code == 200
    assert r.get_json()["data"]["time_in"] == "09:05:00"

    other = make_employee("Other")
    denied = client.post("/api/v1/attendance/clock-in", headers=h, json={"employee_id": other.id})
    assert denied.status_code == 403

    rows = client.get("/api/v1/attendance/records", headers=h).get_json()["data"]
    assert [x["date"] for x in rows] == ["2024-03-04"]


def test_shift_change_request_flow(client, auth_headers, make_employee):
    emp = make_employee()
    hr = auth_headers("hr")
    morning = client.post("/api/v1/shifts", headers=hr, json={
        "name": "Morning", "start_time": "09:00", "end_time": "17:00",
    }).get_json()["data"]
    night = client.post("/api/v1/shifts", headers=hr, json={
        "name": "Night", "start_time": "22:00", "end_time": "06:00",
    }).get_json()["data"]
    assert client.post("/api/v1/shifts/assign", headers=hr, json={
        "employee_id": emp.id, "shift_id": morning["id"], "date": "2024-03-04",
    }).status_code == 200

    mine = auth_headers("employee", emp)
    r = client.post("/api/v1/shifts/requests", headers=mine, json={
        "requested_shift_id": night["id"], "request_date": "2024-03-04", "reason": "class",
    })
    assert r.status_code == 201
    req_id = r.get_json()["data"]["id"]

    assert client.put(f"/api/v1/shifts/requests/{req_id}/status", headers=mine,
                      json={"status": "Approved"}).status_code == 403
    ok_ = client.put(f"/api/v1/shifts/requests/{req_id}/status", headers=hr, json={"status": "Approved"})
    assert ok_.status_code == 200

    cur = client.get("/api/v1/shifts/current/2024-03-04", headers=mine).get_json()["data"]
    assert cur["name"] == "Night"


def test_non_finite_or_malformed_salary_input_is_422(client, auth_headers, make_employee):
    emp = make_employee()
    hr = auth_headers("hr")
    for body in (
        {"base_salary": "NaN"},
        {"base_salary": "Infinity"},
        {"base_salary": 3000, "allowances": "NaN"},
        {"base_salary": 3000, "currency": 840},
        {"base_salary": 3000, "currency": "EURO"},
    ):
        r = client.post("/api/v1/payroll/salaries", headers=hr, json={
            "employee_id": emp.id, "effective_date": "2024-01-01", **body,
        })
        assert r.status_code == 422, body
        assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_non_text_leave_type_is_422(client, auth_headers, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/leave/apply", headers=auth_headers("employee", emp), json={
        "leave_type": 12, "start_date": "2024-03-04", "end_date": "2024-03-08",
    })
    assert r.status_code == 422
