# workzen_api/services/salary_structures.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from workzen_api.common.errors import ValidationFailed
from workzen_api.extensions import db
from workzen_api.models.payroll.salary_structure import SalaryStructure
from workzen_api.services.salary_engine import compute_salary, round2, PROFESSIONAL_TAX

log = logging.getLogger(__name__)

# Default split of a monthly wage; component percents are percent of basic.
DEFAULT_BASIC_PERCENT = 50.0
DEFAULT_COMPONENT_PERCENTS = {
    "hra_percent": 50.0,
    "standard_allowance_percent": 10.0,
    "performance_bonus_percent": 10.0,
    "lta_percent": 5.0,
    "fixed_allowance_percent": 3.0,
    "pf_employee_percent": 12.0,
    "pf_employer_percent": 12.0,
}
# percent column -> fixed-amount column
PERCENT_TO_AMOUNT = {
    "hra_percent": "house_rent_allowance",
    "standard_allowance_percent": "standard_allowance",
    "performance_bonus_percent": "performance_bonus",
    "lta_percent": "travel_allowance",
    "fixed_allowance_percent": "fixed_allowance",
    "pf_employee_percent": "pf_employee",
    "pf_employer_percent": "pf_employer",
    "other_deductions_percent": "other_deductions",
}
AMOUNT_FIELDS = (
    "basic_salary", "house_rent_allowance", "standard_allowance", "performance_bonus",
    "travel_allowance", "fixed_allowance", "pf_employee", "pf_employer",
    "professional_tax", "tds", "other_deductions",
)
PERCENT_FIELDS = ("basic_salary_percent",) + tuple(PERCENT_TO_AMOUNT)


def get_active_structure(employee_id: int, on_date: date) -> Optional[SalaryStructure]:
    """Structure covering on_date; newest effective_from wins."""
    q = (SalaryStructure.query
         .filter(SalaryStructure.employee_id == employee_id)
         .filter(SalaryStructure.effective_from <= on_date)
         .filter(db.or_(SalaryStructure.effective_to.is_(None), SalaryStructure.effective_to >= on_date))
         .order_by(SalaryStructure.effective_from.desc(), SalaryStructure.id.desc()))
    return q.first()


def build_structure_from_wage(total_salary) -> Dict[str, Any]:
    """Field values for a default structure derived from a monthly wage."""
    wage = float(total_salary or 0)
    basic = round2(wage * DEFAULT_BASIC_PERCENT / 100)
    fields: Dict[str, Any] = {
        "month_wage": wage,
        "yearly_wage": round2(wage * 12),
        "basic_salary": basic,
        "basic_salary_percent": DEFAULT_BASIC_PERCENT,
        "professional_tax": float(PROFESSIONAL_TAX),
        "tds": 0.0,
        "other_deductions": 0.0,
    }
    for pct_field, pct in DEFAULT_COMPONENT_PERCENTS.items():
        fields[pct_field] = pct
        fields[PERCENT_TO_AMOUNT[pct_field]] = round2(basic * pct / 100)
    return fields


def _dec(x) -> Optional[Decimal]:
    if x is None or x == "":
        return None
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Invalid number: {x!r}")
    if not d.is_finite():
        raise ValidationFailed(f"Invalid number: {x!r}")
    return d


def _fields_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    if payload.get("total_salary") not in (None, ""):
        total = _dec(payload["total_salary"])
        if total < 0:
            raise ValidationFailed("total_salary must be >= 0")
        fields = build_structure_from_wage(total)
    else:
        fields = {}
        for name in AMOUNT_FIELDS:
            val = _dec(payload.get(name))
            if val is not None and val < 0:
                raise ValidationFailed(f"{name} must be >= 0")
            fields[name] = float(val) if val is not None else 0.0
        for name in PERCENT_FIELDS:
            val = _dec(payload.get(name))
            fields[name] = float(val) if val is not None else None
        if payload.get("month_wage") not in (None, ""):
            fields["month_wage"] = float(_dec(payload["month_wage"]))
            fields["yearly_wage"] = round2(fields["month_wage"] * 12)
    for name in ("working_days_per_week", "break_time"):
        if payload.get(name) is not None:
            fields[name] = payload[name]
    return fields


def apply_full_month_totals(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Store gross/deductions/net for a full month of attendance."""
    full = compute_salary(fields, 0, 0)
    fields["gross_salary"] = full.gross_total
    fields["total_deductions"] = full.deductions_total
    fields["net_salary"] = full.net_amount
    return fields


def create_structure(employee_id: int, payload: Dict[str, Any],
                     effective_from: Optional[date] = None) -> SalaryStructure:
    """
    Add a new structure version and close the open one the day before,
    so effective ranges never overlap.
    """
    effective_from = effective_from or date.today()
    fields = apply_full_month_totals(_fields_from_payload(payload))

    open_row = (SalaryStructure.query
                .filter_by(employee_id=employee_id, effective_to=None)
                .order_by(SalaryStructure.effective_from.desc())
                .first())
    if open_row is not None:
        if effective_from <= open_row.effective_from:
            raise ValidationFailed("effective_from must be after the current structure's effective_from")
        open_row.effective_to = effective_from - timedelta(days=1)

    later = (SalaryStructure.query
             .filter(SalaryStructure.employee_id == employee_id)
             .filter(SalaryStructure.effective_to.isnot(None))
             .filter(SalaryStructure.effective_to >= effective_from)
             .first())
    if later is not None:
        raise ValidationFailed("effective_from overlaps an existing salary structure")

    name = (payload.get("name") or "").strip() or ("Revised Structure" if open_row else "Default Structure")
    row = SalaryStructure(
        employee_id=employee_id,
        name=name,
        description=payload.get("description"),
        effective_from=effective_from,
        effective_to=None,
        **fields,
    )
    db.session.add(row)
    db.session.commit()
    log.info("salary structure %s created for employee %s from %s", row.id, employee_id, effective_from)
    return row


def structure_to_dict(s: SalaryStructure) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": s.id,
        "employee_id": s.employee_id,
        "name": s.name,
        "description": s.description,
        "effective_from": s.effective_from.isoformat() if s.effective_from else None,
        "effective_to": s.effective_to.isoformat() if s.effective_to else None,
        "month_wage": float(s.month_wage or 0),
        "yearly_wage": float(s.yearly_wage or 0),
        "working_days_per_week": s.working_days_per_week,
        "break_time": s.break_time,
        "gross_salary": float(s.gross_salary or 0),
        "total_deductions": float(s.total_deductions or 0),
        "net_salary": float(s.net_salary or 0),
    }
    for name in AMOUNT_FIELDS:
        out[name] = float(getattr(s, name) or 0)
    for name in PERCENT_FIELDS:
        val = getattr(s, name)
        out[name] = float(val) if val is not None else None
    return out


def salary_summary(employee, on_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Full-month breakdown of an employee's pay on on_date. Uses the active
    structure, else the default split of the employee's monthly wage.
    """
    on_date = on_date or date.today()
    structure = get_active_structure(employee.id, on_date)
    if structure is not None:
        source, structure_id, month_wage = "structure", structure.id, float(structure.month_wage or 0)
        basis = structure
    else:
        basis = build_structure_from_wage(employee.salary)
        source, structure_id, month_wage = "wage", None, basis["month_wage"]

    full = compute_salary(basis, 0, 0)
    return {
        "employee": employee.brief(),
        "on": on_date.isoformat(),
        "source": source,
        "salary_structure_id": structure_id,
        "month_wage": month_wage,
        "yearly_wage": round2(month_wage * 12),
        "earnings": [{"name": ln.rule_name, "rate": ln.rate, "amount": ln.amount} for ln in full.gross_earnings],
        "deductions": [{"name": ln.rule_name, "rate": ln.rate, "amount": ln.amount} for ln in full.deductions],
        "gross_salary": full.gross_total,
        "total_deductions": full.deductions_total,
        "net_salary": full.net_amount,
    }
