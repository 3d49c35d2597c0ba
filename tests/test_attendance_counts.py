from datetime import date

from conftest import make_employee, mark_present, add_leave, OCT_START, OCT_END
from workzen_api.services.attendance_counts import (
    gather_attendance_counts, paid_leave_overlap_days, total_working_days,
)


def test_overlap_is_inclusive_and_clipped():
    assert paid_leave_overlap_days(date(2025, 10, 5), date(2025, 10, 5), OCT_START, OCT_END) == 1
    assert paid_leave_overlap_days(date(2025, 9, 28), date(2025, 10, 2), OCT_START, OCT_END) == 2
    assert paid_leave_overlap_days(date(2025, 10, 30), date(2025, 11, 4), OCT_START, OCT_END) == 2
    assert paid_leave_overlap_days(date(2025, 9, 1), date(2025, 9, 30), OCT_START, OCT_END) == 0


def test_only_present_days_inside_period_count(app):
    emp = make_employee("E1")
    mark_present(emp, date(2025, 9, 25), 3)               # before the period
    mark_present(emp, date(2025, 10, 1), 12)
    mark_present(emp, date(2025, 10, 20), 2, status="half_day")
    mark_present(emp, date(2025, 10, 22), 1, status="late")

    counts = gather_attendance_counts(emp.id, OCT_START, OCT_END)
    assert counts.days_present == 12


def test_only_approved_paid_leave_counts(app):
    emp = make_employee("E2")
    add_leave(emp, "vacation", date(2025, 9, 29), date(2025, 10, 3))      # 3 days in October
    add_leave(emp, "sick", date(2025, 10, 14), date(2025, 10, 14))
    add_leave(emp, "unpaid", date(2025, 10, 15), date(2025, 10, 17))
    add_leave(emp, "personal", date(2025, 10, 20), date(2025, 10, 21), status="pending")
    add_leave(emp, "personal", date(2025, 10, 23), date(2025, 10, 23), status="rejected")

    counts = gather_attendance_counts(emp.id, OCT_START, OCT_END)
    assert counts.total_paid_leaves == 4
    assert counts.days_present == 0
    assert counts.working_days == 4


def test_counts_are_per_employee(app):
    a = make_employee("A1")
    b = make_employee("B1")
    mark_present(a, OCT_START, 5)
    mark_present(b, OCT_START, 9)
    assert gather_attendance_counts(a.id, OCT_START, OCT_END).days_present == 5
    assert gather_attendance_counts(b.id, OCT_START, OCT_END).days_present == 9


def test_working_days_policy_from_config(app):
    assert total_working_days() == 22
    app.config["PAYROLL_TOTAL_WORKING_DAYS"] = 26
    assert total_working_days() == 26
