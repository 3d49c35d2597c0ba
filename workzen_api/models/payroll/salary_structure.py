from datetime import datetime
from workzen_api.extensions import db


class SalaryStructure(db.Model):
    """
    One version of an employee's pay configuration.
    Versions are keyed by [effective_from, effective_to]; effective_to NULL = open.
    Every *_percent column means "percent of prorated basic salary" and wins over
    the fixed amount next to it when set.
    """
    __tablename__ = "salary_structures"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False, default="Default Structure")
    description = db.Column(db.Text)

    effective_from = db.Column(db.Date, nullable=False)
    effective_to = db.Column(db.Date, nullable=True)

    # general work info
    month_wage = db.Column(db.Numeric(14, 2), default=0)
    yearly_wage = db.Column(db.Numeric(14, 2), default=0)
    working_days_per_week = db.Column(db.Integer)
    break_time = db.Column(db.Float)

    # earnings
    basic_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    basic_salary_percent = db.Column(db.Numeric(6, 2))
    house_rent_allowance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    hra_percent = db.Column(db.Numeric(6, 2))
    standard_allowance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    standard_allowance_percent = db.Column(db.Numeric(6, 2))
    performance_bonus = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    performance_bonus_percent = db.Column(db.Numeric(6, 2))
    travel_allowance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    lta_percent = db.Column(db.Numeric(6, 2))
    fixed_allowance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    fixed_allowance_percent = db.Column(db.Numeric(6, 2))

    # deductions
    pf_employee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pf_employee_percent = db.Column(db.Numeric(6, 2))
    pf_employer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pf_employer_percent = db.Column(db.Numeric(6, 2))
    professional_tax = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    tds = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_deductions_percent = db.Column(db.Numeric(6, 2))

    # full-month totals at the time the structure was saved
    gross_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", backref="salary_structures")
