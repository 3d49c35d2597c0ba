from flask import Blueprint, request

from workzen_api.blueprints.employees import get_employee_or_404
from workzen_api.common.auth import (
    requires_roles, is_employee_only, current_employee, current_user_id,
)
from workzen_api.common.errors import Forbidden, NotFound
from workzen_api.common.http import ok, parse_date
from workzen_api.common.paging import paginate
from workzen_api.extensions import db
from workzen_api.models.leave import LeaveRequest
from workzen_api.services.leave_service import apply_leave, approve_leave, reject_leave, leave_to_dict

bp = Blueprint("leave", __name__, url_prefix="/api/v1/leaves")


def _get_leave(leave_id: int) -> LeaveRequest:
    lv = db.session.get(LeaveRequest, leave_id)
    if lv is None:
        raise NotFound("Leave request not found")
    return lv


@bp.get("")
@requires_roles()
def list_leaves():
    q = LeaveRequest.query
    if is_employee_only():
        me = current_employee()
        q = q.filter(LeaveRequest.employee_id == (me.id if me else -1))
    elif request.args.get("employee_id"):
        q = q.filter(LeaveRequest.employee_id == request.args.get("employee_id", type=int))
    if request.args.get("status"):
        q = q.filter(LeaveRequest.status == request.args["status"])
    if request.args.get("type"):
        q = q.filter(LeaveRequest.type == request.args["type"])
    rows, meta = paginate(q.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()))
    return ok([leave_to_dict(lv) for lv in rows], **meta)


@bp.post("")
@requires_roles()
def create_leave():
    j = request.get_json(silent=True) or {}
    if j.get("employee_id") and not is_employee_only():
        emp = get_employee_or_404(int(j["employee_id"]))
    else:
        emp = current_employee()
        if emp is None:
            raise Forbidden("No employee profile linked to this user")

    lv = apply_leave(
        emp,
        (j.get("type") or "").strip().lower(),
        parse_date(j.get("start_date")),
        parse_date(j.get("end_date")),
        reason=j.get("reason"),
        applied_by_user_id=current_user_id(),
    )
    return ok(leave_to_dict(lv), status=201)


@bp.post("/<int:leave_id>/approve")
@requires_roles("hr")
def approve(leave_id: int):
    return ok(leave_to_dict(approve_leave(_get_leave(leave_id), current_user_id())))


@bp.post("/<int:leave_id>/reject")
@requires_roles("hr")
def reject(leave_id: int):
    j = request.get_json(silent=True) or {}
    lv = reject_leave(_get_leave(leave_id), current_user_id(), j.get("reason"))
    return ok(leave_to_dict(lv))
