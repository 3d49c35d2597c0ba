# workzen_api/models/payroll/__init__.py
# Import order matters: salary structures first, then pay_run (payroll rows and payslips).
from workzen_api.extensions import db  # noqa

from .salary_structure import SalaryStructure
from .pay_run import PayRun, Payroll, Payslip

__all__ = ["SalaryStructure", "PayRun", "Payroll", "Payslip"]
