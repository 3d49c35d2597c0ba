from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, current_app
from sqlalchemy import or_

from workzen_api.common.auth import requires_roles, ensure_own_record, is_employee_only, current_employee
from workzen_api.common.errors import NotFound, ValidationFailed
from workzen_api.common.http import ok, parse_date, iso, money
from workzen_api.common.paging import paginate
from workzen_api.extensions import db
from workzen_api.models.employee import Employee
from workzen_api.models.security import UserRole, ensure_role
from workzen_api.models.user import User

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

EDITABLE = ("first_name", "last_name", "phone", "address", "department", "position",
            "bank_name", "account_number", "pan_no", "uan_no", "status")


def _row(e: Employee) -> dict:
    return {
        "id": e.id,
        "user_id": e.user_id,
        "code": e.code,
        "email": e.email,
        "first_name": e.first_name,
        "last_name": e.last_name,
        "full_name": e.full_name,
        "phone": e.phone,
        "address": e.address,
        "department": e.department,
        "position": e.position,
        "salary": money(e.salary),
        "bank_name": e.bank_name,
        "account_number": e.account_number,
        "pan_no": e.pan_no,
        "uan_no": e.uan_no,
        "hire_date": iso(e.hire_date),
        "status": e.status,
    }


def _salary(val):
    try:
        d = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise ValidationFailed("salary must be a number")
    if not d.is_finite():
        raise ValidationFailed("salary must be a number")
    if d < 0:
        raise ValidationFailed("salary must be >= 0")
    return d


def _next_code() -> str:
    last = Employee.query.order_by(Employee.id.desc()).first()
    return f"EMP{(last.id + 1 if last else 1):04d}"


def get_employee_or_404(emp_id: int) -> Employee:
    emp = db.session.get(Employee, emp_id)
    if emp is None:
        raise NotFound("Employee not found")
    return emp


@bp.get("")
@requires_roles()
def list_employees():
    q = Employee.query
    if is_employee_only():
        me = current_employee()
        q = q.filter(Employee.id == (me.id if me else -1))
    if request.args.get("status"):
        q = q.filter(Employee.status == request.args["status"])
    if request.args.get("department"):
        q = q.filter(Employee.department == request.args["department"])
    s = (request.args.get("q") or "").strip()
    if s:
        like = f"%{s}%"
        q = q.filter(or_(Employee.first_name.ilike(like), Employee.last_name.ilike(like),
                         Employee.code.ilike(like), Employee.email.ilike(like)))
    rows, meta = paginate(q.order_by(Employee.id.asc()))
    return ok([_row(e) for e in rows], **meta)


@bp.post("")
@requires_roles("hr")
def create_employee():
    j = request.get_json(silent=True) or {}
    email = (j.get("email") or "").strip().lower()
    first_name = (j.get("first_name") or "").strip()
    if not (email and first_name):
        raise ValidationFailed("email and first_name are required")
    if Employee.query.filter_by(email=email).first():
        raise ValidationFailed("Employee with this email already exists")

    emp = Employee(
        code=(j.get("code") or "").strip() or _next_code(),
        email=email,
        first_name=first_name,
        salary=_salary(j.get("salary") or 0),
        hire_date=parse_date(j.get("hire_date")),
        status="active",
    )
    for f in EDITABLE:
        if f in j and f != "status":
            setattr(emp, f, j[f])

    # optional login account with the employee role
    password = j.get("password")
    if password:
        if User.query.filter_by(email=email).first():
            raise ValidationFailed("User with this email already exists")
        u = User(email=email, full_name=emp.full_name, status="active")
        u.set_password(password)
        db.session.add(u)
        db.session.flush()
        db.session.add(UserRole(user_id=u.id, role_id=ensure_role("employee").id))
        emp.user_id = u.id

    db.session.add(emp)
    db.session.commit()
    current_app.logger.info("employee %s created (%s)", emp.id, emp.code)
    return ok(_row(emp), status=201)


@bp.get("/<int:emp_id>")
@requires_roles()
def get_employee(emp_id: int):
    ensure_own_record(emp_id)
    return ok(_row(get_employee_or_404(emp_id)))


@bp.patch("/<int:emp_id>")
@requires_roles("hr")
def update_employee(emp_id: int):
    emp = get_employee_or_404(emp_id)
    j = request.get_json(silent=True) or {}
    for f in EDITABLE:
        if f in j:
            setattr(emp, f, j[f])
    if "salary" in j:
        emp.salary = _salary(j["salary"])
    if "hire_date" in j:
        emp.hire_date = parse_date(j["hire_date"])
    db.session.commit()
    return ok(_row(emp))
