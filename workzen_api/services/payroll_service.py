# workzen_api/services/payroll_service.py
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from workzen_api.common.errors import InvalidState, ValidationFailed
from workzen_api.extensions import db
from workzen_api.models.employee import Employee
from workzen_api.models.payroll.pay_run import PayRun, Payroll
from workzen_api.services.attendance_counts import gather_attendance_counts, total_working_days
from workzen_api.services.salary_engine import SalaryComputation, compute_salary, round2
from workzen_api.services.salary_structures import build_structure_from_wage, get_active_structure

log = logging.getLogger(__name__)


def _ensure_status(obj, allowed, label: str):
    st = obj.status or "draft"
    if st not in allowed:
        raise InvalidState(f"{label} in status '{st}' cannot perform this action (allowed: {', '.join(allowed)})")


def compute_for_period(employee: Employee, run: PayRun) -> SalaryComputation:
    """Engine result for one employee over a run's period."""
    structure = get_active_structure(employee.id, run.period_start)
    if structure is None:
        structure = build_structure_from_wage(employee.salary)
    counts = gather_attendance_counts(employee.id, run.period_start, run.period_end)
    return compute_salary(structure, counts.days_present, counts.total_paid_leaves, total_working_days())


def calculate_employee_payroll(employee: Employee, run: PayRun) -> Dict[str, Any]:
    calc = compute_for_period(employee, run)
    return {
        "employee_id": employee.id,
        "gross_salary": calc.gross_total,
        "total_deductions": calc.deductions_total,
        "net_salary": calc.net_amount,
        "calc_meta": {
            "days_present": calc.days_present,
            "total_paid_leaves": calc.total_paid_leaves,
            "total_working_days": calc.total_working_days,
            "attendance_ratio": calc.attendance_ratio,
            "basic_wage": calc.computed_base_salary,
        },
    }


def _active_employees() -> List[Employee]:
    return Employee.query.filter(Employee.status == "active").order_by(Employee.id.asc()).all()


def preview_run(run: PayRun) -> Dict[str, Any]:
    rows, errors = [], []
    total = Decimal("0")
    employees = _active_employees()
    for emp in employees:
        try:
            calc = calculate_employee_payroll(emp, run)
        except Exception as e:
            log.warning("preview failed for employee %s in run %s: %s", emp.id, run.id, e)
            errors.append({"employee_id": emp.id, "employee_name": emp.full_name, "error": str(e)})
            continue
        rows.append({
            "employee_id": emp.id,
            "employee_name": emp.full_name,
            "gross_salary": calc["gross_salary"],
            "total_deductions": calc["total_deductions"],
            "net_salary": calc["net_salary"],
        })
        total += Decimal(str(calc["net_salary"]))
    return {
        "total_employees": len(employees),
        "total_amount": float(total),
        "payrolls": rows,
        "errors": errors or None,
    }


def process_run(run: PayRun) -> Dict[str, Any]:
    """
    Create one computed Payroll per active employee.
    The run returns to draft with totals; on failure it is reverted to draft.
    """
    _ensure_status(run, ("draft",), "Pay run")
    if Payroll.query.filter_by(pay_run_id=run.id).count() > 0:
        raise InvalidState("Payrolls already generated for this pay run")

    run.status = "processing"
    db.session.commit()

    try:
        created, errors = 0, []
        total = Decimal("0")
        now = datetime.utcnow()
        for emp in _active_employees():
            try:
                calc = calculate_employee_payroll(emp, run)
            except Exception as e:
                log.warning("payroll failed for employee %s in run %s: %s", emp.id, run.id, e)
                errors.append({"employee_id": emp.id, "employee_name": emp.full_name, "error": str(e)})
                continue
            db.session.add(Payroll(
                pay_run_id=run.id,
                employee_id=emp.id,
                status="computed",
                gross_salary=calc["gross_salary"],
                total_deductions=calc["total_deductions"],
                net_salary=calc["net_salary"],
                calc_meta=calc["calc_meta"],
                computed_at=now,
            ))
            total += Decimal(str(calc["net_salary"]))
            created += 1

        run.status = "draft"
        run.total_employees = created
        run.total_amount = total
        db.session.commit()
    except Exception:
        db.session.rollback()
        run.status = "draft"
        db.session.commit()
        raise

    log.info("pay run %s processed: %s payrolls, %s errors", run.id, created, len(errors))
    return {"payrolls_created": created, "errors": errors or None}


def _complete_if_all_validated(run: PayRun) -> bool:
    payrolls = Payroll.query.filter_by(pay_run_id=run.id).all()
    if not payrolls or any(p.status != "validated" for p in payrolls):
        return False
    run.status = "completed"
    run.total_amount = sum((Decimal(str(p.net_salary or 0)) for p in payrolls), Decimal("0"))
    return True


def validate_payroll(payroll: Payroll) -> bool:
    """Returns True when this validation completed the pay run."""
    _ensure_status(payroll, ("computed", "draft"), "Payroll")
    payroll.status = "validated"
    payroll.validated_at = datetime.utcnow()
    db.session.flush()
    completed = _complete_if_all_validated(payroll.pay_run) if payroll.pay_run else False
    db.session.commit()
    return completed


def validate_all(run: PayRun) -> int:
    pending = (Payroll.query
               .filter(Payroll.pay_run_id == run.id)
               .filter(Payroll.status.in_(("draft", "computed")))
               .all())
    if not pending:
        raise ValidationFailed("No payrolls to validate")
    now = datetime.utcnow()
    for p in pending:
        p.status = "validated"
        p.validated_at = now
    db.session.flush()
    _complete_if_all_validated(run)
    db.session.commit()
    log.info("pay run %s: validated %s payrolls", run.id, len(pending))
    return len(pending)


def update_payroll(payroll: Payroll, gross_salary=None, total_deductions=None,
                   net_salary=None) -> Payroll:
    """Manual override of snapshot figures; net follows gross - deductions unless given."""
    if payroll.status == "validated":
        raise InvalidState("Cannot edit validated payroll")

    def _d(x) -> Optional[Decimal]:
        if x is None:
            return None
        try:
            d = Decimal(str(x))
        except (InvalidOperation, ValueError):
            raise ValidationFailed(f"Invalid amount: {x!r}")
        if not d.is_finite():
            raise ValidationFailed(f"Invalid amount: {x!r}")
        return d

    gross = _d(gross_salary)
    ded = _d(total_deductions)
    net = _d(net_salary)
    if gross is not None:
        payroll.gross_salary = gross
    if ded is not None:
        payroll.total_deductions = ded
    if net is None:
        net = Decimal(str(payroll.gross_salary or 0)) - Decimal(str(payroll.total_deductions or 0))
    payroll.net_salary = net
    db.session.commit()
    return payroll


def list_run_payrolls(run: PayRun) -> List[Dict[str, Any]]:
    rows = []
    for p in Payroll.query.filter_by(pay_run_id=run.id).order_by(Payroll.id.asc()).all():
        calc = compute_for_period(p.employee, run)
        rows.append({
            "id": p.id,
            "pay_period": run.name,
            "employee": p.employee.brief(),
            "employer_cost": float(p.gross_salary or 0),
            "basic_wage": calc.computed_base_salary,
            "gross_wage": float(p.gross_salary or 0),
            "net_wage": float(p.net_salary or 0),
            "status": "Done" if p.status == "validated" else p.status,
            "has_payslip": p.payslip is not None,
            "payslip_id": p.payslip.id if p.payslip else None,
            "payslip_status": p.payslip.status if p.payslip else None,
        })
    return rows


# ---------- lookups & dashboard ----------

def month_bounds(year: int, month: int) -> Tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationFailed("month must be 1..12")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def current_month_run(year: Optional[int] = None, month: Optional[int] = None,
                      today: Optional[date] = None) -> Optional[PayRun]:
    """Latest-created pay run whose period starts in the given month (default: this month)."""
    today = today or date.today()
    lo, hi = month_bounds(year or today.year, month or today.month)
    return (PayRun.query
            .filter(PayRun.period_start >= lo, PayRun.period_start <= hi)
            .order_by(PayRun.created_at.desc(), PayRun.id.desc())
            .first())


# (warning type, employee columns, message suffix); blank or NULL in any column counts as missing
PROFILE_CHECKS = (
    ("no_bank_account", ("account_number", "bank_name"), "employee(s) without bank account details"),
    ("no_phone", ("phone",), "employee(s) without phone number"),
    ("no_pan", ("pan_no",), "employee(s) without PAN number"),
    ("no_uan", ("uan_no",), "employee(s) without UAN number"),
    ("no_address", ("address",), "employee(s) without address"),
)
RECENT_RUNS = 5
MONTHLY_WINDOW = 6


def profile_warnings() -> List[Dict[str, Any]]:
    """Counts of active employees missing details a pay run needs."""
    warnings = []
    for kind, columns, message in PROFILE_CHECKS:
        missing = [db.or_(getattr(Employee, c).is_(None), getattr(Employee, c) == "") for c in columns]
        count = Employee.query.filter(Employee.status == "active", db.or_(*missing)).count()
        if count:
            warnings.append({"type": kind, "count": count, "message": f"{count} {message}"})
    return warnings


def payroll_dashboard(today: Optional[date] = None) -> Dict[str, Any]:
    """
    Recent pay runs, data-quality warnings, and per-month employer cost and
    headcount of completed runs paid in the last twelve months (keyed by pay date).
    """
    today = today or date.today()
    recent = (PayRun.query
              .order_by(PayRun.created_at.desc(), PayRun.id.desc())
              .limit(RECENT_RUNS)
              .all())

    since = date(today.year - 1, today.month, 1)
    completed = (PayRun.query
                 .filter(PayRun.status == "completed", PayRun.pay_date >= since)
                 .order_by(PayRun.pay_date.asc())
                 .all())
    months: Dict[str, Dict[str, Any]] = {}
    for run in completed:
        key = run.pay_date.strftime("%Y-%m")
        bucket = months.setdefault(key, {"key": key, "month": run.pay_date.strftime("%b %Y"),
                                         "cost": 0.0, "count": 0})
        bucket["cost"] = round2(bucket["cost"] + float(run.total_amount or 0))
        bucket["count"] += run.total_employees or 0

    ordered = [months[k] for k in sorted(months)]
    cost = [{"key": m["key"], "month": m["month"], "cost": m["cost"]} for m in ordered]
    count = [{"key": m["key"], "month": m["month"], "count": m["count"]} for m in ordered]
    return {
        "recent_pay_runs": recent,
        "warnings": profile_warnings(),
        "employee_cost": {"annually": cost, "monthly": cost[-MONTHLY_WINDOW:]},
        "employee_count": {"annually": count, "monthly": count[-MONTHLY_WINDOW:]},
    }
