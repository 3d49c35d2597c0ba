import os
from datetime import date, timedelta

import pytest
from flask_jwt_extended import create_access_token

from workzen_api import create_app
from workzen_api.extensions import db
from workzen_api.models.attendance import Attendance
from workzen_api.models.employee import Employee
from workzen_api.models.leave import LeaveRequest
from workzen_api.models.security import UserRole, ensure_role
from workzen_api.models.user import User


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


def make_user(email, *roles, password="secret123"):
    u = User(email=email, full_name=email.split("@")[0].title(), status="active")
    u.set_password(password)
    db.session.add(u)
    db.session.flush()
    for code in roles:
        db.session.add(UserRole(user_id=u.id, role_id=ensure_role(code).id))
    db.session.commit()
    return u


def make_employee(code, salary=50000, user=None, status="active"):
    emp = Employee(
        code=code,
        email=f"{code.lower()}@workzen.local",
        first_name=code.title(),
        last_name="Tester",
        salary=salary,
        status=status,
        user_id=user.id if user else None,
    )
    db.session.add(emp)
    db.session.commit()
    return emp


def mark_present(emp, start, days, status="present"):
    for i in range(days):
        db.session.add(Attendance(employee_id=emp.id, date=start + timedelta(days=i), status=status))
    db.session.commit()


def add_leave(emp, leave_type, start, end, status="approved"):
    lv = LeaveRequest(employee_id=emp.id, type=leave_type, start_date=start, end_date=end,
                      days=(end - start).days + 1, status=status)
    db.session.add(lv)
    db.session.commit()
    return lv


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims={"roles": user.role_codes()})
    return {"Authorization": f"Bearer {token}"}


OCT_START = date(2025, 10, 1)
OCT_END = date(2025, 10, 31)
