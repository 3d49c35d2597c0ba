from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from io import BytesIO
from typing import List, Dict, Any, Optional, Tuple

from flask import current_app, render_template

from workzen_api.common.errors import InvalidState, ValidationFailed
from workzen_api.extensions import db
from workzen_api.models.payroll.pay_run import PayRun, Payroll, Payslip
from workzen_api.services.attendance_counts import gather_attendance_counts, total_working_days
from workzen_api.services.salary_engine import compute_salary, round2
from workzen_api.services.salary_structures import get_active_structure

log = logging.getLogger(__name__)

# Lines printed even when their amount is zero, whenever a breakdown exists
ALWAYS_PRINTED = {"Basic Salary", "Gross Salary", "Total Deductions", "Net Salary"}


@dataclass
class WorkedDay:
    type: str
    days: int
    description: str
    amount: float


@dataclass
class PayslipDTO:
    id: Optional[int]
    payroll_id: int
    employee_id: int
    employee: Dict[str, Any]
    pay_run: Optional[Dict[str, Any]]
    salary_structure: Optional[Dict[str, Any]]
    period: Optional[Dict[str, Any]]
    worked_days: Dict[str, Any]
    salary_computation: Optional[Dict[str, Any]]
    gross_salary: float
    total_deductions: float
    net_salary: float
    status: str
    pdf_url: Optional[str] = None
    payroll: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


def run_brief(run: PayRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "name": run.name,
        "period_start": run.period_start.isoformat(),
        "period_end": run.period_end.isoformat(),
        "pay_date": run.pay_date.isoformat() if run.pay_date else None,
    }


class PayslipService:
    def build_payslip_dto(self, payroll: Payroll, payslip: Optional[Payslip] = None) -> dict:
        """
        Payslip view of a payroll row: worked days and the attendance-prorated
        salary computation for the run's period, next to the stored snapshot figures.
        Without a pay run no attendance-based computation is attempted; without a
        salary structure `salary_computation` is None.
        """
        run = payroll.pay_run
        emp = payroll.employee

        items: List[WorkedDay] = []
        days_present = paid_leaves = 0
        structure = None
        computation = None

        if run is not None:
            counts = gather_attendance_counts(emp.id, run.period_start, run.period_end)
            days_present, paid_leaves = counts.days_present, counts.total_paid_leaves
            items = [
                WorkedDay("Attendance", days_present, "Working days in period", 0.0),
                WorkedDay("Paid Time Off", paid_leaves, "Paid leaves in period", 0.0),
            ]

            structure = get_active_structure(emp.id, run.period_start)
            if structure is not None:
                days_in_period = (run.period_end - run.period_start).days + 1
                daily_rate = float(structure.gross_salary or 0) / days_in_period
                items[0].amount = round2(daily_rate * days_present)
                items[1].amount = round2(daily_rate * paid_leaves)
                computation = compute_salary(structure, days_present, paid_leaves, total_working_days()).to_dict()

        dto = PayslipDTO(
            id=payslip.id if payslip else None,
            payroll_id=payroll.id,
            employee_id=emp.id,
            employee=emp.brief(),
            pay_run=run_brief(run) if run else None,
            salary_structure={"id": structure.id, "name": structure.name} if structure else None,
            period={"start": run.period_start.isoformat(), "end": run.period_end.isoformat()} if run else None,
            worked_days={
                "items": [asdict(x) for x in items],
                "total_days": days_present + paid_leaves,
                "total_amount": round2(sum(x.amount for x in items)),
            },
            salary_computation=computation,
            gross_salary=float(payroll.gross_salary or 0),
            total_deductions=float(payroll.total_deductions or 0),
            net_salary=float(payroll.net_salary or 0),
            status=payslip.status if payslip else payroll.status,
            pdf_url=payslip.pdf_url if payslip else None,
            payroll={"id": payroll.id, "status": payroll.status},
            created_at=payslip.created_at.isoformat() if payslip and payslip.created_at else None,
        )
        return asdict(dto)

    def generate_payslips(self, run: PayRun) -> Dict[str, int]:
        if run.status != "completed":
            raise InvalidState("Pay run must be completed before generating payslips")

        validated = Payroll.query.filter_by(pay_run_id=run.id, status="validated").all()
        if not validated:
            raise ValidationFailed("No validated payrolls found for this pay run")

        existing = {p.payroll_id for p in
                    Payslip.query.filter(Payslip.payroll_id.in_([p.id for p in validated])).all()}
        created = 0
        for p in validated:
            if p.id in existing:
                continue
            db.session.add(Payslip(
                payroll_id=p.id,
                employee_id=p.employee_id,
                user_id=p.employee.user_id,
                status="validated",
            ))
            created += 1
        db.session.commit()
        log.info("pay run %s: %s payslips generated, %s already existed", run.id, created, len(existing))
        return {
            "payslips_created": created,
            "total_validated": len(validated),
            "already_existed": len(existing),
        }

    # ---------- printable output ----------

    def payslip_pdf_lines(self, dto: dict) -> Tuple[List[Tuple[str, float]], List[Tuple[str, float]], List[Tuple[str, float]]]:
        """
        (earnings, deductions, totals) rows for printed payslips.
        Zero optional lines are dropped; Basic Salary and the three totals always print.
        Without a salary computation there is no line breakdown: earnings and
        deductions are empty and only the stored totals are printed.
        Deduction amounts are printed as positive numbers.
        """
        comp = dto.get("salary_computation")
        if comp:
            earnings = [(ln["rule_name"], ln["amount"]) for ln in comp["gross_earnings"]]
            deductions = [(ln["rule_name"], abs(ln["amount"])) for ln in comp["deductions"]]
            gross, ded, net = comp["gross_total"], comp["deductions_total"], comp["net_amount"]
        else:
            earnings, deductions = [], []
            gross, ded, net = dto["gross_salary"], dto["total_deductions"], dto["net_salary"]

        earnings = [(n, a) for n, a in earnings if a or n in ALWAYS_PRINTED]
        deductions = [(n, a) for n, a in deductions if a or n in ALWAYS_PRINTED]
        totals = [("Gross Salary", gross), ("Total Deductions", ded), ("Net Salary", net)]
        return earnings, deductions, totals

    def render_payslip_html(self, dto: dict) -> str:
        earnings, deductions, totals = self.payslip_pdf_lines(dto)
        return render_template(
            "payroll/payslip.html",
            payslip=dto,
            company_name=current_app.config.get("PAYSLIP_COMPANY_NAME", "WorkZen HRMS"),
            earnings=earnings,
            deductions=deductions,
            totals=dict(totals),
        )

    def render_payslip_pdf(self, dto: dict) -> bytes:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.lib.units import inch
        from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

        earnings, deductions, totals = self.payslip_pdf_lines(dto)
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4)
        styles = getSampleStyleSheet()
        elements = [
            Paragraph(current_app.config.get("PAYSLIP_COMPANY_NAME", "WorkZen HRMS"), styles["Title"]),
            Paragraph("Payslip", styles["Heading2"]),
            Spacer(1, 12),
        ]

        emp = dto["employee"]
        period = dto.get("period") or {}
        run = dto.get("pay_run") or {}
        info = Table([
            ["Employee:", emp["name"]],
            ["Employee ID:", emp["code"]],
            ["Pay Period:", f"{period.get('start', '-')} - {period.get('end', '-')}"],
            ["Pay Date:", run.get("pay_date") or "-"],
        ], colWidths=[2 * inch, 4 * inch])
        info.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.5, colors.grey)]))
        elements += [info, Spacer(1, 16)]

        def _section(title, rows, color):
            body = [[n, f"{a:,.2f}"] for n, a in rows] or [["No breakdown (stored totals only)", "-"]]
            t = Table([[title, "Amount"]] + body,
                      colWidths=[4 * inch, 2 * inch])
            t.setStyle(TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), color),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
            ]))
            return t

        elements += [_section("Earnings", earnings, colors.green), Spacer(1, 12)]
        elements += [_section("Deductions", deductions, colors.red), Spacer(1, 12)]
        elements.append(_section("Summary", totals, colors.HexColor("#3498db")))

        doc.build(elements)
        return buffer.getvalue()
