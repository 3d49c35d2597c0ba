from datetime import date, timedelta

import pytest

from conftest import make_user, make_employee, mark_present, add_leave, auth_headers
from workzen_api.common.errors import InvalidState, ValidationFailed
from workzen_api.extensions import db
from workzen_api.models.payroll.pay_run import PayRun, Payroll
from workzen_api.services import payroll_service as svc
from workzen_api.services.salary_structures import create_structure


def _october_run():
    r = PayRun(name="Payrun Oct 2025", period_start=date(2025, 10, 1), period_end=date(2025, 10, 31),
               pay_date=date(2025, 11, 1))
    db.session.add(r)
    db.session.commit()
    return r


@pytest.fixture
def staffed(app):
    full = make_employee("FULL", salary=50000)
    create_structure(full.id, {"total_salary": 50000}, date(2025, 1, 1))
    mark_present(full, date(2025, 10, 1), 20)
    add_leave(full, "vacation", date(2025, 10, 21), date(2025, 10, 22))

    part = make_employee("PART", salary=50000)
    create_structure(part.id, {"total_salary": 50000}, date(2025, 1, 1))
    mark_present(part, date(2025, 10, 1), 10)

    # no structure: pay is derived from the employee's monthly wage
    nostruct = make_employee("NOSTRUCT", salary=50000)
    mark_present(nostruct, date(2025, 10, 1), 22)

    make_employee("GONE", salary=99999, status="inactive")
    return full, part, nostruct


def test_preview_does_not_persist(staffed):
    run = _october_run()
    out = svc.preview_run(run)
    assert out["total_employees"] == 3
    assert out["errors"] is None
    assert Payroll.query.count() == 0
    by_code = {row["employee_name"].split()[0]: row for row in out["payrolls"]}
    assert by_code["Full"]["net_salary"] == 41300.0


def test_process_creates_one_payroll_per_active_employee(staffed):
    full, part, nostruct = staffed
    run = _october_run()
    res = svc.process_run(run)

    assert res["payrolls_created"] == 3
    assert run.status == "draft"
    assert run.total_employees == 3

    p_full = Payroll.query.filter_by(employee_id=full.id).one()
    assert float(p_full.gross_salary) == 44500.0
    assert float(p_full.net_salary) == 41300.0
    assert p_full.calc_meta["attendance_ratio"] == 1.0
    assert p_full.calc_meta["total_paid_leaves"] == 2

    p_part = Payroll.query.filter_by(employee_id=part.id).one()
    assert p_part.calc_meta["basic_wage"] == 11363.64
    assert float(p_part.net_salary) < float(p_full.net_salary)

    p_none = Payroll.query.filter_by(employee_id=nostruct.id).one()
    assert float(p_none.net_salary) == 41300.0


def test_process_only_once(staffed):
    run = _october_run()
    svc.process_run(run)
    with pytest.raises(InvalidState):
        svc.process_run(run)


def test_process_failure_reverts_to_draft(staffed, monkeypatch):
    run = _october_run()

    def boom():
        raise RuntimeError("db went away")

    monkeypatch.setattr(svc, "_active_employees", boom)
    with pytest.raises(RuntimeError):
        svc.process_run(run)
    db.session.refresh(run)
    assert run.status == "draft"


def test_validating_every_payroll_completes_the_run(staffed):
    run = _october_run()
    svc.process_run(run)
    payrolls = Payroll.query.filter_by(pay_run_id=run.id).order_by(Payroll.id).all()

    assert svc.validate_payroll(payrolls[0]) is False
    assert run.status == "draft"
    with pytest.raises(InvalidState):
        svc.validate_payroll(payrolls[0])

    assert svc.validate_all(run) == 2
    assert run.status == "completed"
    assert float(run.total_amount) == pytest.approx(sum(float(p.net_salary) for p in payrolls))


def test_validated_payroll_cannot_be_edited(staffed):
    run = _october_run()
    svc.process_run(run)
    p = Payroll.query.filter_by(pay_run_id=run.id).first()

    svc.update_payroll(p, gross_salary=1000, total_deductions=250)
    assert float(p.net_salary) == 750.0

    svc.validate_payroll(p)
    with pytest.raises(InvalidState):
        svc.update_payroll(p, gross_salary=1)


def test_payroll_override_rejects_non_finite_amounts(staffed, client):
    run = _october_run()
    svc.process_run(run)
    p = Payroll.query.filter_by(pay_run_id=run.id).first()
    net_before = float(p.net_salary)

    with pytest.raises(ValidationFailed):
        svc.update_payroll(p, net_salary="NaN")
    with pytest.raises(ValidationFailed):
        svc.update_payroll(p, gross_salary="Infinity")

    hr = make_user("hr@workzen.local", "hr")
    r = client.patch(f"/api/v1/payrolls/{p.id}", json={"total_deductions": "sNaN"}, headers=auth_headers(hr))
    assert r.status_code == 422
    assert float(db.session.get(Payroll, p.id).net_salary) == net_before


def test_run_payroll_listing_uses_engine_basic(staffed):
    full, part, _ = staffed
    run = _october_run()
    svc.process_run(run)
    rows = {r["employee"]["code"]: r for r in svc.list_run_payrolls(run)}
    assert rows["FULL"]["basic_wage"] == 25000.0
    assert rows["PART"]["basic_wage"] == 11363.64
    assert rows["FULL"]["status"] == "computed"
    assert rows["FULL"]["has_payslip"] is False


def test_pay_run_api_flow(staffed, client):
    hr = make_user("hr@workzen.local", "hr")
    h = auth_headers(hr)

    r = client.post("/api/v1/pay-runs", json={
        "period_start": "2025-10-01", "period_end": "2025-10-31", "pay_date": "2025-11-01",
    }, headers=h)
    assert r.status_code == 201
    run = r.get_json()["data"]
    assert run["name"] == "Payrun Oct 2025"
    assert run["status"] == "draft"

    r = client.get("/api/v1/pay-runs?year=2025&month=10", headers=h)
    assert [x["id"] for x in r.get_json()["data"]] == [run["id"]]
    r = client.get("/api/v1/pay-runs?year=2025&month=9", headers=h)
    assert r.get_json()["data"] == []

    r = client.post(f"/api/v1/pay-runs/{run['id']}/preview", headers=h)
    assert r.status_code == 200
    assert len(r.get_json()["data"]["payrolls"]) == 3

    r = client.post(f"/api/v1/pay-runs/{run['id']}/process", headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["payrolls_created"] == 3

    r = client.post(f"/api/v1/pay-runs/{run['id']}/process", headers=h)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "INVALID_STATE"

    r = client.get(f"/api/v1/pay-runs/{run['id']}/payrolls", headers=h)
    rows = r.get_json()["data"]
    assert len(rows) == 3

    r = client.post(f"/api/v1/payrolls/{rows[0]['id']}/validate", headers=h)
    assert r.status_code == 200
    assert r.get_json()["meta"]["run_completed"] is False

    r = client.post(f"/api/v1/pay-runs/{run['id']}/validate", headers=h)
    assert r.get_json()["data"]["validated"] == 2
    assert r.get_json()["data"]["pay_run"]["status"] == "completed"


def test_pay_run_api_requires_payroll_role(app, client):
    emp_user = make_user("e@workzen.local", "employee")
    r = client.get("/api/v1/pay-runs", headers=auth_headers(emp_user))
    assert r.status_code == 403
    r = client.get("/api/v1/pay-runs")
    assert r.status_code == 401


def test_create_pay_run_validates_dates(app, client):
    payroll_user = make_user("p@workzen.local", "payroll")
    r = client.post("/api/v1/pay-runs", json={
        "period_start": "2025-10-31", "period_end": "2025-10-01", "pay_date": "2025-11-01",
    }, headers=auth_headers(payroll_user))
    assert r.status_code == 422


def test_employee_sees_only_own_payrolls(staffed, client):
    full, part, _ = staffed
    u = make_user("full@workzen.local", "employee")
    full.user_id = u.id
    db.session.commit()
    run = _october_run()
    svc.process_run(run)

    h = auth_headers(u)
    r = client.get(f"/api/v1/employees/{full.id}/payrolls", headers=h)
    assert r.status_code == 200
    assert len(r.get_json()["data"]) == 1
    r = client.get(f"/api/v1/employees/{part.id}/payrolls", headers=h)
    assert r.status_code == 403


def test_current_month_run(staffed, client):
    run = _october_run()
    svc.process_run(run)
    assert svc.current_month_run(2025, 10).id == run.id
    assert svc.current_month_run(2025, 11) is None
    assert svc.current_month_run(today=date(2025, 10, 20)).id == run.id

    h = auth_headers(make_user("p@workzen.local", "payroll"))
    r = client.get("/api/v1/pay-runs/current-month?year=2025&month=10", headers=h)
    data = r.get_json()["data"]
    assert data["id"] == run.id
    assert len(data["payrolls"]) == 3

    r = client.get("/api/v1/pay-runs/current-month?year=2025&month=11", headers=h)
    assert r.get_json()["data"] is None
    r = client.get("/api/v1/pay-runs/current-month?year=2025&month=13", headers=h)
    assert r.status_code == 422


def _past_run(name, start, pay_date, status="draft", amount=0, employees=0):
    r = PayRun(name=name, period_start=start, period_end=start + timedelta(days=27), pay_date=pay_date,
               status=status, total_amount=amount, total_employees=employees)
    db.session.add(r)
    db.session.commit()
    return r


def test_dashboard_runs_warnings_and_costs(staffed, client):
    full, part, nostruct = staffed
    full.phone, full.address = "9876543210", "12 MG Road"
    full.bank_name, full.account_number = "HDFC", "001122"
    full.pan_no, full.uan_no = "ABCDE1234F", "100200300"
    part.bank_name, part.account_number = "HDFC", ""  # blank account still counts as missing
    db.session.commit()

    _past_run("Old", date(2024, 10, 1), date(2024, 11, 1), "completed", 999, 9)
    _past_run("Nov A", date(2025, 10, 1), date(2025, 11, 1), "completed", 1000.25, 2)
    _past_run("Nov B", date(2025, 10, 16), date(2025, 11, 15), "completed", 500.25, 1)
    drafts = [_past_run(f"Draft {i}", date(2025, 12, 1), date(2026, 1, 1)) for i in range(3)]

    data = svc.payroll_dashboard(today=date(2025, 12, 15))
    assert [r.name for r in data["recent_pay_runs"]] == ["Draft 2", "Draft 1", "Draft 0", "Nov B", "Nov A"]

    warnings = {w["type"]: w["count"] for w in data["warnings"]}
    assert warnings == {"no_bank_account": 2, "no_phone": 2, "no_pan": 2, "no_uan": 2, "no_address": 2}

    assert data["employee_cost"]["annually"] == [{"key": "2025-11", "month": "Nov 2025", "cost": 1500.5}]
    assert data["employee_count"]["monthly"] == [{"key": "2025-11", "month": "Nov 2025", "count": 3}]

    r = client.get("/api/v1/pay-runs/dashboard", headers=auth_headers(make_user("hr@workzen.local", "hr")))
    assert r.status_code == 200
    body = r.get_json()["data"]
    assert body["recent_pay_runs"][0]["id"] == drafts[-1].id
    assert len(body["warnings"]) == 5

    r = client.get("/api/v1/pay-runs/dashboard", headers=auth_headers(make_user("e@workzen.local", "employee")))
    assert r.status_code == 403
