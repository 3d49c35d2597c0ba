# workzen_api/services/attendance_counts.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func

from workzen_api.extensions import db
from workzen_api.models.attendance import Attendance
from workzen_api.models.leave import LeaveRequest, PAID_LEAVE_TYPES
from workzen_api.services.salary_engine import DEFAULT_TOTAL_WORKING_DAYS


@dataclass(frozen=True)
class AttendanceCounts:
    days_present: int
    total_paid_leaves: int

    @property
    def working_days(self) -> int:
        return self.days_present + self.total_paid_leaves


def total_working_days() -> int:
    """Attendance-ratio denominator; a policy constant, not the calendar length."""
    return int(current_app.config.get("PAYROLL_TOTAL_WORKING_DAYS", DEFAULT_TOTAL_WORKING_DAYS))


def paid_leave_overlap_days(leave_start: date, leave_end: date,
                            period_start: date, period_end: date) -> int:
    """Inclusive day count of a leave inside the pay period, never negative."""
    overlap_start = max(leave_start, period_start)
    overlap_end = min(leave_end, period_end)
    return max(0, (overlap_end - overlap_start).days + 1)


def count_present_days(employee_id: int, period_start: date, period_end: date) -> int:
    q = (db.session.query(func.count(Attendance.id))
         .filter(Attendance.employee_id == employee_id)
         .filter(Attendance.date >= period_start)
         .filter(Attendance.date <= period_end)
         .filter(Attendance.status == "present"))
    return int(q.scalar() or 0)


def count_paid_leave_days(employee_id: int, period_start: date, period_end: date) -> int:
    leaves = (LeaveRequest.query
              .filter(LeaveRequest.employee_id == employee_id)
              .filter(LeaveRequest.type.in_(PAID_LEAVE_TYPES))
              .filter(LeaveRequest.status == "approved")
              .filter(LeaveRequest.start_date <= period_end)
              .filter(LeaveRequest.end_date >= period_start)
              .all())
    return sum(paid_leave_overlap_days(lv.start_date, lv.end_date, period_start, period_end)
               for lv in leaves)


def gather_attendance_counts(employee_id: int, period_start: date, period_end: date) -> AttendanceCounts:
    return AttendanceCounts(
        days_present=count_present_days(employee_id, period_start, period_end),
        total_paid_leaves=count_paid_leave_days(employee_id, period_start, period_end),
    )
