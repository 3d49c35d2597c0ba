from datetime import datetime
from workzen_api.extensions import db


class PayRun(db.Model):
    __tablename__ = "pay_runs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    pay_date = db.Column(db.Date, nullable=False)
    # draft -> processing -> draft (payrolls computed) -> completed (all validated)
    status = db.Column(db.String(16), nullable=False, default="draft")
    total_employees = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Numeric(16, 2), nullable=False, default=0)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payrolls = db.relationship("Payroll", back_populates="pay_run",
                               cascade="all, delete-orphan", order_by="Payroll.id")


class Payroll(db.Model):
    """Coarse gross/deductions/net snapshot for one employee in one pay run."""
    __tablename__ = "payrolls"

    id = db.Column(db.Integer, primary_key=True)
    pay_run_id = db.Column(db.Integer, db.ForeignKey("pay_runs.id", ondelete="CASCADE"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="computed")  # computed|validated
    gross_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    calc_meta = db.Column(db.JSON)  # summary of inputs used

    computed_at = db.Column(db.DateTime)
    validated_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("pay_run_id", "employee_id", name="uq_payroll_run_employee"),
    )

    pay_run = db.relationship("PayRun", back_populates="payrolls")
    employee = db.relationship("Employee", lazy="joined")
    payslip = db.relationship("Payslip", back_populates="payroll", uselist=False)


class Payslip(db.Model):
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    payroll_id = db.Column(db.Integer, db.ForeignKey("payrolls.id", ondelete="CASCADE"), nullable=False, unique=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="validated")
    pdf_url = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    payroll = db.relationship("Payroll", back_populates="payslip", lazy="joined")
    employee = db.relationship("Employee", lazy="joined")
