from datetime import date

import pytest

from conftest import make_employee, make_user, auth_headers
from workzen_api.common.errors import ValidationFailed
from workzen_api.extensions import db
from workzen_api.services.salary_structures import (
    build_structure_from_wage, create_structure, get_active_structure,
)


def test_default_split_of_monthly_wage():
    f = build_structure_from_wage(50000)
    assert f["basic_salary"] == 25000.0
    assert f["house_rent_allowance"] == 12500.0
    assert f["standard_allowance"] == 2500.0
    assert f["performance_bonus"] == 2500.0
    assert f["travel_allowance"] == 1250.0
    assert f["fixed_allowance"] == 750.0
    assert f["pf_employee"] == 3000.0
    assert f["hra_percent"] == 50.0
    assert f["professional_tax"] == 200.0
    assert f["yearly_wage"] == 600000.0


def test_create_stores_full_month_totals(app):
    emp = make_employee("S1")
    s = create_structure(emp.id, {"total_salary": 50000}, date(2025, 1, 1))
    assert s.name == "Default Structure"
    assert float(s.gross_salary) == 44500.0
    assert float(s.total_deductions) == 3200.0
    assert float(s.net_salary) == 41300.0


def test_new_version_closes_previous_one(app):
    emp = make_employee("S2")
    first = create_structure(emp.id, {"total_salary": 40000}, date(2025, 1, 1))
    second = create_structure(emp.id, {"total_salary": 60000}, date(2025, 6, 1))

    db.session.refresh(first)
    assert first.effective_to == date(2025, 5, 31)
    assert second.effective_to is None
    assert second.name == "Revised Structure"

    assert get_active_structure(emp.id, date(2025, 3, 15)).id == first.id
    assert get_active_structure(emp.id, date(2025, 5, 31)).id == first.id
    assert get_active_structure(emp.id, date(2025, 6, 1)).id == second.id
    assert get_active_structure(emp.id, date(2024, 12, 31)) is None


def test_new_version_must_start_after_open_one(app):
    emp = make_employee("S3")
    create_structure(emp.id, {"total_salary": 40000}, date(2025, 3, 1))
    with pytest.raises(ValidationFailed):
        create_structure(emp.id, {"total_salary": 45000}, date(2025, 3, 1))


def test_explicit_components(app):
    emp = make_employee("S4")
    s = create_structure(emp.id, {
        "basic_salary": 30000, "hra_percent": 20, "standard_allowance_percent": 10,
        "performance_bonus_percent": 5, "lta_percent": 3, "fixed_allowance_percent": 7,
        "pf_employee_percent": 12,
    }, date(2025, 1, 1))
    assert float(s.gross_salary) == 43500.0
    assert float(s.net_salary) == 39700.0


def test_rejects_bad_numbers(app):
    emp = make_employee("S5")
    with pytest.raises(ValidationFailed):
        create_structure(emp.id, {"basic_salary": "abc"}, date(2025, 1, 1))
    with pytest.raises(ValidationFailed):
        create_structure(emp.id, {"total_salary": -5}, date(2025, 1, 1))


@pytest.mark.parametrize("payload", [
    {"total_salary": "NaN"},
    {"total_salary": "sNaN"},
    {"total_salary": "Infinity"},
    {"basic_salary": "NaN"},
    {"house_rent_allowance": "-Infinity"},
    {"hra_percent": "nan"},
])
def test_rejects_non_finite_numbers(app, payload):
    emp = make_employee("S8")
    with pytest.raises(ValidationFailed):
        create_structure(emp.id, payload, date(2025, 1, 1))
    assert emp.salary_structures == []


def test_structure_api_answers_422_for_nan(app, client):
    hr = make_user("hr@workzen.local", "hr")
    emp = make_employee("S9")
    r = client.post(f"/api/v1/employees/{emp.id}/salary-structures",
                    json={"total_salary": "NaN", "effective_from": "2025-01-01"},
                    headers=auth_headers(hr))
    assert r.status_code == 422
    assert r.get_json()["success"] is False


def test_structure_api(app, client):
    hr = make_user("hr@workzen.local", "hr")
    emp_user = make_user("e@workzen.local", "employee")
    other_user = make_user("o@workzen.local", "employee")
    emp = make_employee("S6", user=emp_user)
    make_employee("S7", user=other_user)

    r = client.post(f"/api/v1/employees/{emp.id}/salary-structures",
                    json={"total_salary": 50000, "effective_from": "2025-01-01"},
                    headers=auth_headers(hr))
    assert r.status_code == 201
    assert r.get_json()["data"]["net_salary"] == 41300.0

    r = client.get(f"/api/v1/employees/{emp.id}/salary-structures/active?on=2025-02-01",
                   headers=auth_headers(emp_user))
    assert r.status_code == 200
    assert r.get_json()["data"]["basic_salary"] == 25000.0

    r = client.get(f"/api/v1/employees/{emp.id}/salary-structures/active?on=2024-02-01",
                   headers=auth_headers(hr))
    assert r.status_code == 404

    # employees cannot read someone else's structures or create any
    r = client.get(f"/api/v1/employees/{emp.id}/salary-structures", headers=auth_headers(other_user))
    assert r.status_code == 403
    r = client.post(f"/api/v1/employees/{emp.id}/salary-structures",
                    json={"total_salary": 1}, headers=auth_headers(emp_user))
    assert r.status_code == 403
