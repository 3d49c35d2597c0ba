# workzen_api/services/salary_engine.py
"""
Payslip salary computation.

Every place that shows payslip figures (payslip JSON, HTML/PDF payslips,
pay-run payroll listing, pay-run processing) goes through compute_salary().

Rounding: each monetary amount is rounded to 2 decimals as soon as it is
produced and the rounded value is what later steps reuse. Rounding is half-up
on binary floats so figures match payslips that were already issued.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

DEFAULT_TOTAL_WORKING_DAYS = 22
PROFESSIONAL_TAX = 200

# (rule name, fixed-amount field, percent field, prorate fixed amount when no percent)
EARNING_RULES = (
    ("House Rent Allowance", "house_rent_allowance", "hra_percent", True),
    ("Standard Allowance", "standard_allowance", "standard_allowance_percent", True),
    ("Performance Bonus", "performance_bonus", "performance_bonus_percent", True),
    # LTA is percent-only: a legacy fixed travel allowance that cannot be
    # expressed as a percent pays 0.
    ("Leave Travel Allowance", "travel_allowance", "lta_percent", False),
    ("Fixed Allowance", "fixed_allowance", "fixed_allowance_percent", True),
)
PF_RULE = ("PF Employee", "pf_employee", "pf_employee_percent", True)
OTHER_DEDUCTIONS_RULE = ("Other Deductions", "other_deductions", "other_deductions_percent", True)


def round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


@dataclass(frozen=True)
class SalaryLine:
    rule_name: str
    rate: float
    amount: float


@dataclass(frozen=True)
class SalaryComputation:
    gross_earnings: List[SalaryLine]
    deductions: List[SalaryLine]
    gross_total: float
    deductions_total: float
    net_amount: float
    computed_base_salary: float
    attendance_ratio: float
    working_days: int
    days_present: int
    total_paid_leaves: int
    total_working_days: int

    def line(self, rule_name: str) -> Optional[SalaryLine]:
        for ln in (*self.gross_earnings, *self.deductions):
            if ln.rule_name == rule_name:
                return ln
        return None

    def amount_of(self, rule_name: str) -> float:
        ln = self.line(rule_name)
        return ln.amount if ln else 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _field(structure: Any, name: str):
    if structure is None:
        return None
    if isinstance(structure, Mapping):
        return structure.get(name)
    return getattr(structure, name, None)


def _num(value) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _percent(value) -> Optional[float]:
    """Explicit percent or None when the structure leaves it unset."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _resolve_percent(explicit: Optional[float], fixed_amount: float, basic_salary: float) -> float:
    if explicit is not None:
        return round2(explicit)
    if basic_salary > 0 and fixed_amount > 0:
        return round2(fixed_amount / basic_salary * 100)
    return 0.0


def _negative(amount: float) -> float:
    # deductions are listed as negative amounts; avoid -0.0 in JSON
    return -amount if amount else 0.0


def _rate_from_amount(amount: float, prorated_basic: float) -> float:
    if prorated_basic > 0:
        return round2(amount / prorated_basic * 100)
    return 0.0


def _component(structure, rule, basic_salary: float, prorated_basic: float,
               attendance_ratio: float) -> Tuple[float, float]:
    """Returns (amount, display rate) for one percent-or-fixed component."""
    _, fixed_field, percent_field, prorate_fixed = rule
    fixed_amount = _num(_field(structure, fixed_field))
    percent = _resolve_percent(_percent(_field(structure, percent_field)), fixed_amount, basic_salary)

    if percent > 0:
        return round2(prorated_basic * percent / 100), percent
    if not prorate_fixed:
        return 0.0, 0.0
    amount = round2(fixed_amount * attendance_ratio)
    return amount, _rate_from_amount(amount, prorated_basic)


def compute_salary(structure, days_present, total_paid_leaves,
                   total_working_days=DEFAULT_TOTAL_WORKING_DAYS) -> SalaryComputation:
    """
    Pro-rate a salary structure by attendance and itemize earnings/deductions.

    structure: SalaryStructure row, or any mapping/object with the same field names.
    days_present: days with attendance status "present" in the pay period.
    total_paid_leaves: approved paid-leave days overlapping the pay period.
    total_working_days: denominator of the attendance ratio (policy, not calendar length).

    Never raises for non-negative inputs; unset numeric fields count as 0.
    """
    days_present = int(days_present or 0)
    total_paid_leaves = int(total_paid_leaves or 0)
    total_working_days = int(total_working_days or 0)

    working_days = days_present + total_paid_leaves
    if total_working_days > 0 and working_days > 0:
        attendance_ratio = working_days / total_working_days
    else:
        # no attendance data -> full pay
        attendance_ratio = 1.0

    basic_salary = _num(_field(structure, "basic_salary"))
    prorated_basic = round2(basic_salary * attendance_ratio)
    basic_rate = round2(prorated_basic / basic_salary * 100) if basic_salary > 0 else 100.0

    earned = {}
    for rule in EARNING_RULES:
        earned[rule[0]] = _component(structure, rule, basic_salary, prorated_basic, attendance_ratio)

    hra = earned["House Rent Allowance"][0]
    standard_allowance = earned["Standard Allowance"][0]
    bonus = earned["Performance Bonus"][0]
    lta = earned["Leave Travel Allowance"][0]
    fixed_allowance = earned["Fixed Allowance"][0]
    gross_total = round2(prorated_basic + hra + standard_allowance + lta + bonus + fixed_allowance)

    pf_employee, pf_rate = _component(structure, PF_RULE, basic_salary, prorated_basic, attendance_ratio)
    professional_tax = float(PROFESSIONAL_TAX)
    pt_rate = round2(professional_tax / prorated_basic * 100) if prorated_basic > 0 else 0.0
    other, other_rate = _component(structure, OTHER_DEDUCTIONS_RULE, basic_salary, prorated_basic,
                                   attendance_ratio)

    deductions_total = round2(pf_employee + professional_tax + other)
    net_amount = round2(gross_total - deductions_total)

    gross_earnings = [SalaryLine("Basic Salary", basic_rate, prorated_basic)]
    gross_earnings += [SalaryLine(name, earned[name][1], earned[name][0])
                       for name in ("House Rent Allowance", "Standard Allowance", "Performance Bonus",
                                    "Leave Travel Allowance", "Fixed Allowance")]

    deductions = [
        SalaryLine("PF Employee", pf_rate, _negative(pf_employee)),
        SalaryLine("Professional Tax", pt_rate, _negative(professional_tax)),
        SalaryLine("Other Deductions", other_rate, _negative(other)),
    ]

    return SalaryComputation(
        gross_earnings=gross_earnings,
        deductions=deductions,
        gross_total=gross_total,
        deductions_total=deductions_total,
        net_amount=net_amount,
        computed_base_salary=prorated_basic,
        attendance_ratio=attendance_ratio,
        working_days=working_days,
        days_present=days_present,
        total_paid_leaves=total_paid_leaves,
        total_working_days=total_working_days,
    )
