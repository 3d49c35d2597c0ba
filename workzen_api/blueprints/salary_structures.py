from datetime import date

from flask import Blueprint, request

from workzen_api.blueprints.employees import get_employee_or_404
from workzen_api.common.auth import requires_roles, ensure_own_record, PAYROLL_ROLES
from workzen_api.common.errors import NotFound, ValidationFailed
from workzen_api.common.http import ok, parse_date
from workzen_api.models.payroll.salary_structure import SalaryStructure
from workzen_api.services.salary_structures import (
    create_structure, get_active_structure, structure_to_dict,
)

bp = Blueprint("salary_structures", __name__, url_prefix="/api/v1/employees/<int:emp_id>/salary-structures")


@bp.get("")
@requires_roles()
def list_structures(emp_id: int):
    ensure_own_record(emp_id)
    get_employee_or_404(emp_id)
    rows = (SalaryStructure.query
            .filter_by(employee_id=emp_id)
            .order_by(SalaryStructure.effective_from.desc())
            .all())
    return ok([structure_to_dict(s) for s in rows])


@bp.get("/active")
@requires_roles()
def active_structure(emp_id: int):
    ensure_own_record(emp_id)
    get_employee_or_404(emp_id)
    raw = request.args.get("on")
    on = parse_date(raw) if raw else date.today()
    if on is None:
        raise ValidationFailed("on must be YYYY-MM-DD")
    s = get_active_structure(emp_id, on)
    if s is None:
        raise NotFound("No salary structure covers this date")
    return ok(structure_to_dict(s))


@bp.post("")
@requires_roles(*PAYROLL_ROLES)
def add_structure(emp_id: int):
    get_employee_or_404(emp_id)
    j = request.get_json(silent=True) or {}
    eff = None
    if j.get("effective_from"):
        eff = parse_date(j["effective_from"])
        if eff is None:
            raise ValidationFailed("effective_from must be YYYY-MM-DD")
    s = create_structure(emp_id, j, eff)
    return ok(structure_to_dict(s), status=201)
