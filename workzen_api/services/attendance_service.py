# workzen_api/services/attendance_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from workzen_api.common.errors import InvalidState
from workzen_api.extensions import db
from workzen_api.models.attendance import Attendance
from workzen_api.models.employee import Employee

log = logging.getLogger(__name__)

LATE_AFTER = time(9, 30)
AUTO_CHECKOUT_AT = time(18, 0)
FULL_DAY_MIN_HOURS = 4


def status_for_hours(hours: float) -> str:
    return "present" if hours >= FULL_DAY_MIN_HOURS else "half_day"


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def today_attendance(employee: Employee, today: Optional[date] = None) -> Optional[Attendance]:
    return Attendance.query.filter_by(employee_id=employee.id, date=today or date.today()).first()


def check_in(employee: Employee, now: Optional[datetime] = None) -> Attendance:
    now = now or datetime.now()
    today = now.date()
    row = Attendance.query.filter_by(employee_id=employee.id, date=today).first()
    if row is not None and row.check_in is not None:
        raise InvalidState("Already checked in today")

    status = "late" if now.time() > LATE_AFTER else "present"
    if row is None:
        row = Attendance(employee_id=employee.id, date=today)
        db.session.add(row)
    row.check_in = now
    row.status = status
    db.session.commit()
    return row


def check_out(employee: Employee, now: Optional[datetime] = None) -> Attendance:
    now = now or datetime.now()
    row = Attendance.query.filter_by(employee_id=employee.id, date=now.date()).first()
    if row is None or row.check_in is None:
        raise InvalidState("Please check in first")
    if row.check_out is not None:
        raise InvalidState("Already checked out today")

    row.check_out = now
    hours = _hours_between(row.check_in, now)
    row.hours_worked = round(hours, 2)
    row.status = status_for_hours(hours)
    db.session.commit()
    return row


def auto_checkout_incomplete(now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Close attendance rows that were checked in but never checked out,
    stamping check-out at 18:00 of their date. Today's rows are left
    alone until 18:00 has passed.
    """
    now = now or datetime.now()
    rows = (Attendance.query
            .filter(Attendance.check_in.isnot(None))
            .filter(Attendance.check_out.is_(None))
            .filter(Attendance.date <= now.date())
            .all())

    updated = 0
    for row in rows:
        checkout = datetime.combine(row.date, AUTO_CHECKOUT_AT)
        if row.date == now.date() and now < checkout:
            continue
        row.check_out = checkout
        hours = max(0.0, _hours_between(row.check_in, checkout))
        row.hours_worked = round(hours, 2)
        row.status = status_for_hours(hours)
        updated += 1
    db.session.commit()

    log.info("auto-checkout: %s open rows, %s closed", len(rows), updated)
    return {"processed": len(rows), "updated": updated}


def attendance_to_dict(a: Attendance) -> Dict[str, Any]:
    return {
        "id": a.id,
        "employee_id": a.employee_id,
        "employee_name": a.employee.full_name if a.employee else None,
        "date": a.date.isoformat(),
        "check_in": a.check_in.isoformat() if a.check_in else None,
        "check_out": a.check_out.isoformat() if a.check_out else None,
        "hours_worked": a.hours_worked,
        "status": a.status,
    }
