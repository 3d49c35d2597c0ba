from flask import Blueprint, request, current_app

from workzen_api.blueprints.employees import get_employee_or_404
from workzen_api.common.auth import requires_roles, is_employee_only, current_employee, current_user_id
from workzen_api.common.errors import Forbidden, ValidationFailed
from workzen_api.common.http import ok, parse_date
from workzen_api.common.paging import paginate
from workzen_api.models.attendance import Attendance, ATTENDANCE_STATUSES
from workzen_api.services.attendance_service import (
    check_in, check_out, today_attendance, auto_checkout_incomplete, attendance_to_dict,
)

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


def _me():
    emp = current_employee()
    if emp is None:
        raise Forbidden("No employee profile linked to this user")
    return emp


@bp.get("")
@requires_roles()
def list_attendance():
    q = Attendance.query
    if is_employee_only():
        q = q.filter(Attendance.employee_id == _me().id)
    elif request.args.get("employee_id"):
        q = q.filter(Attendance.employee_id == request.args.get("employee_id", type=int))

    status = request.args.get("status")
    if status:
        if status not in ATTENDANCE_STATUSES:
            raise ValidationFailed(f"status must be one of: {', '.join(ATTENDANCE_STATUSES)}")
        q = q.filter(Attendance.status == status)

    for arg in ("date", "start_date", "end_date"):
        if request.args.get(arg) and parse_date(request.args[arg]) is None:
            raise ValidationFailed(f"{arg} must be YYYY-MM-DD")
    if request.args.get("date"):
        q = q.filter(Attendance.date == parse_date(request.args["date"]))
    else:
        if request.args.get("start_date"):
            q = q.filter(Attendance.date >= parse_date(request.args["start_date"]))
        if request.args.get("end_date"):
            q = q.filter(Attendance.date <= parse_date(request.args["end_date"]))

    rows, meta = paginate(q.order_by(Attendance.date.desc(), Attendance.id.desc()))
    return ok([attendance_to_dict(a) for a in rows], **meta)


@bp.post("/check-in")
@requires_roles()
def do_check_in():
    return ok(attendance_to_dict(check_in(_me())), status=201)


@bp.post("/check-out")
@requires_roles()
def do_check_out():
    return ok(attendance_to_dict(check_out(_me())))


@bp.get("/today")
@requires_roles()
def my_today():
    row = today_attendance(_me())
    if row is None:
        return ok(None, message="No attendance record found for today")
    return ok(attendance_to_dict(row))


# ---------- HR on behalf of an employee ----------
def _target_employee():
    j = request.get_json(silent=True) or {}
    try:
        emp_id = int(j.get("employee_id"))
    except (TypeError, ValueError):
        raise ValidationFailed("employee_id is required")
    return get_employee_or_404(emp_id)


@bp.post("/admin/check-in")
@requires_roles("hr")
def admin_check_in():
    emp = _target_employee()
    row = check_in(emp)
    current_app.logger.info("user %s checked in employee %s", current_user_id(), emp.id)
    return ok(attendance_to_dict(row), status=201)


@bp.post("/admin/check-out")
@requires_roles("hr")
def admin_check_out():
    emp = _target_employee()
    row = check_out(emp)
    current_app.logger.info("user %s checked out employee %s", current_user_id(), emp.id)
    return ok(attendance_to_dict(row))


@bp.post("/auto-checkout")
@requires_roles("hr")
def run_auto_checkout():
    res = auto_checkout_incomplete()
    return ok(res, message=f"Auto-checkout completed: {res['updated']} of {res['processed']} records updated")
