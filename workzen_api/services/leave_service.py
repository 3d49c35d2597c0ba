# workzen_api/services/leave_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from workzen_api.common.errors import InvalidState, ValidationFailed
from workzen_api.extensions import db
from workzen_api.models.employee import Employee
from workzen_api.models.leave import LeaveRequest, LEAVE_TYPES

log = logging.getLogger(__name__)


def _ensure_pending(lv: LeaveRequest):
    if lv.status != "pending":
        raise InvalidState("Leave request is not pending")


def apply_leave(employee: Employee, leave_type: str, start_date: Optional[date], end_date: Optional[date],
                reason: Optional[str] = None, applied_by_user_id: Optional[int] = None,
                today: Optional[date] = None) -> LeaveRequest:
    today = today or date.today()
    if leave_type not in LEAVE_TYPES:
        raise ValidationFailed(f"type must be one of: {', '.join(LEAVE_TYPES)}")
    if not (start_date and end_date):
        raise ValidationFailed("start_date and end_date are required (YYYY-MM-DD)")
    if end_date < start_date:
        raise ValidationFailed("end_date must be >= start_date")
    # sick leave is recorded after the fact
    if leave_type == "sick" and start_date > today:
        raise ValidationFailed("Sick leave dates must be in the past")

    clash = (LeaveRequest.query
             .filter(LeaveRequest.employee_id == employee.id)
             .filter(LeaveRequest.status.in_(("pending", "approved")))
             .filter(LeaveRequest.start_date <= end_date)
             .filter(LeaveRequest.end_date >= start_date)
             .first())
    if clash is not None:
        raise InvalidState("Leave request overlaps an existing pending or approved request",
                           payload={"leave_id": clash.id})

    lv = LeaveRequest(
        employee_id=employee.id,
        type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days=(end_date - start_date).days + 1,
        reason=reason,
        status="pending",
        applied_by_user_id=applied_by_user_id,
    )
    db.session.add(lv)
    db.session.commit()
    return lv


def approve_leave(lv: LeaveRequest, approver_user_id: Optional[int]) -> LeaveRequest:
    _ensure_pending(lv)
    lv.status = "approved"
    lv.approved_by_user_id = approver_user_id
    lv.approved_at = datetime.utcnow()
    db.session.commit()
    log.info("leave %s approved by user %s", lv.id, approver_user_id)
    return lv


def reject_leave(lv: LeaveRequest, approver_user_id: Optional[int], reason: Optional[str] = None) -> LeaveRequest:
    _ensure_pending(lv)
    lv.status = "rejected"
    lv.approved_by_user_id = approver_user_id
    lv.approved_at = datetime.utcnow()
    lv.rejection_reason = reason
    db.session.commit()
    log.info("leave %s rejected by user %s", lv.id, approver_user_id)
    return lv


def leave_to_dict(lv: LeaveRequest) -> Dict[str, Any]:
    return {
        "id": lv.id,
        "employee_id": lv.employee_id,
        "employee_name": lv.employee.full_name if lv.employee else None,
        "type": lv.type,
        "start_date": lv.start_date.isoformat(),
        "end_date": lv.end_date.isoformat(),
        "days": lv.days,
        "reason": lv.reason,
        "status": lv.status,
        "approved_at": lv.approved_at.isoformat() if lv.approved_at else None,
        "rejection_reason": lv.rejection_reason,
    }
