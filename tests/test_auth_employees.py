from datetime import date

from conftest import make_user, make_employee, auth_headers
from workzen_api.extensions import db
from workzen_api.models.employee import Employee
from workzen_api.models.user import User
from workzen_api.services.salary_structures import create_structure


def test_login_refresh_me(app, client):
    make_user("hr@workzen.local", "hr", password="pw-123")

    r = client.post("/api/v1/auth/login", json={"email": "HR@workzen.local", "password": "nope"})
    assert r.status_code == 401

    r = client.post("/api/v1/auth/login", json={"email": "HR@workzen.local", "password": "pw-123"})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["user"]["roles"] == ["hr"]

    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access']}"})
    assert r.get_json()["data"]["email"] == "hr@workzen.local"

    r = client.post("/api/v1/auth/refresh", headers={"Authorization": f"Bearer {data['refresh']}"})
    assert r.status_code == 200
    assert r.get_json()["data"]["access"]


def test_disabled_user_cannot_log_in(app, client):
    u = make_user("old@workzen.local", "employee", password="pw")
    u.status = "inactive"
    db.session.commit()
    r = client.post("/api/v1/auth/login", json={"email": "old@workzen.local", "password": "pw"})
    assert r.status_code == 403


def test_create_employee_with_login(app, client):
    hr = make_user("hr@workzen.local", "hr")
    r = client.post("/api/v1/employees", json={
        "email": "New.Hire@workzen.local", "first_name": "New", "last_name": "Hire",
        "salary": 42000, "hire_date": "2025-10-01", "password": "welcome1",
    }, headers=auth_headers(hr))
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["code"] == "EMP0001"
    assert data["salary"] == 42000.0
    assert data["full_name"] == "New Hire"

    u = User.query.filter_by(email="new.hire@workzen.local").one()
    assert u.role_codes() == ["employee"]
    assert db.session.get(Employee, data["id"]).user_id == u.id

    r = client.post("/api/v1/auth/login", json={"email": "new.hire@workzen.local", "password": "welcome1"})
    assert r.get_json()["data"]["user"]["employee_id"] == data["id"]


def test_employee_validation_and_duplicates(app, client):
    hr = make_user("hr@workzen.local", "hr")
    h = auth_headers(hr)
    r = client.post("/api/v1/employees", json={"first_name": "X"}, headers=h)
    assert r.status_code == 422
    r = client.post("/api/v1/employees", json={"email": "x@w.io", "first_name": "X", "salary": "lots"}, headers=h)
    assert r.status_code == 422
    r = client.post("/api/v1/employees", json={"email": "x@w.io", "first_name": "X", "salary": "NaN"}, headers=h)
    assert r.status_code == 422
    client.post("/api/v1/employees", json={"email": "x@w.io", "first_name": "X"}, headers=h)
    r = client.post("/api/v1/employees", json={"email": "x@w.io", "first_name": "Y"}, headers=h)
    assert r.status_code == 422


def test_employee_visibility(app, client):
    u = make_user("e@workzen.local", "employee")
    me = make_employee("ME", user=u)
    other = make_employee("OTHER")
    admin = make_user("admin@workzen.local", "admin")

    r = client.get("/api/v1/employees", headers=auth_headers(u))
    assert [e["id"] for e in r.get_json()["data"]] == [me.id]
    r = client.get(f"/api/v1/employees/{other.id}", headers=auth_headers(u))
    assert r.status_code == 403

    r = client.get("/api/v1/employees?q=oth", headers=auth_headers(admin))
    assert [e["id"] for e in r.get_json()["data"]] == [other.id]
    assert r.get_json()["meta"]["total"] == 1

    r = client.patch(f"/api/v1/employees/{other.id}", json={"department": "Finance", "salary": 61000},
                     headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.get_json()["data"]["department"] == "Finance"

    r = client.patch(f"/api/v1/employees/{other.id}", json={"department": "Ops"}, headers=auth_headers(u))
    assert r.status_code == 403
    r = client.get("/api/v1/employees/9999", headers=auth_headers(admin))
    assert r.status_code == 404


def test_change_password(app, client):
    u = make_user("e@workzen.local", "employee", password="Old-pass1")
    h = auth_headers(u)

    def _put(old, new, confirm=None):
        return client.put("/api/v1/auth/password", headers=h, json={
            "old_password": old, "new_password": new, "confirm_password": confirm or new,
        })

    assert _put("wrong", "New-pass1").status_code == 422
    assert _put("Old-pass1", "short").status_code == 422
    assert _put("Old-pass1", "nouppercase1!").status_code == 422
    assert _put("Old-pass1", "New-pass1", "New-pass2").status_code == 422

    r = _put("Old-pass1", "New-pass1")
    assert r.status_code == 200

    r = client.post("/api/v1/auth/login", json={"email": "e@workzen.local", "password": "Old-pass1"})
    assert r.status_code == 401
    r = client.post("/api/v1/auth/login", json={"email": "e@workzen.local", "password": "New-pass1"})
    assert r.status_code == 200


def test_my_salary(app, client):
    u = make_user("e@workzen.local", "employee")
    emp = make_employee("SAL1", salary=30000, user=u)

    # no structure yet: default split of the monthly wage
    r = client.get("/api/v1/auth/me/salary", headers=auth_headers(u))
    data = r.get_json()["data"]
    assert data["source"] == "wage"
    assert data["gross_salary"] == 26700.0
    assert data["total_deductions"] == 2000.0
    assert data["net_salary"] == 24700.0

    create_structure(emp.id, {"total_salary": 50000}, date(2025, 1, 1))
    r = client.get("/api/v1/auth/me/salary?on=2025-06-01", headers=auth_headers(u))
    data = r.get_json()["data"]
    assert data["source"] == "structure"
    assert data["month_wage"] == 50000.0
    assert data["earnings"][0] == {"name": "Basic Salary", "rate": 100.0, "amount": 25000.0}
    assert data["net_salary"] == 41300.0

    r = client.get("/api/v1/auth/me/salary?on=someday", headers=auth_headers(u))
    assert r.status_code == 422

    hr = make_user("hr@workzen.local", "hr")
    r = client.get("/api/v1/auth/me/salary", headers=auth_headers(hr))
    assert r.status_code == 404
