from __future__ import annotations

from datetime import date
from typing import Any, Dict

from flask import Blueprint, request, current_app

from workzen_api.blueprints.employees import get_employee_or_404
from workzen_api.common.auth import requires_roles, ensure_own_record, current_user_id, PAYROLL_ROLES
from workzen_api.common.errors import NotFound, ValidationFailed
from workzen_api.common.http import ok, parse_date, iso, money
from workzen_api.common.paging import paginate
from workzen_api.extensions import db
from workzen_api.models.payroll.pay_run import PayRun, Payroll
from workzen_api.services import payroll_service as svc

bp = Blueprint("pay_runs", __name__, url_prefix="/api/v1/pay-runs")
payrolls_bp = Blueprint("payrolls", __name__, url_prefix="/api/v1")


# ---------- helpers ----------
def _row_run(r: PayRun) -> Dict[str, Any]:
    return {
        "id": r.id,
        "name": r.name,
        "period_start": iso(r.period_start),
        "period_end": iso(r.period_end),
        "pay_date": iso(r.pay_date),
        "status": r.status,
        "total_employees": r.total_employees,
        "total_amount": money(r.total_amount),
        "created_at": iso(r.created_at),
        "updated_at": iso(r.updated_at),
    }


def _row_payroll(p: Payroll) -> Dict[str, Any]:
    return {
        "id": p.id,
        "pay_run_id": p.pay_run_id,
        "pay_run": p.pay_run.name if p.pay_run else None,
        "employee": p.employee.brief(),
        "status": p.status,
        "gross_salary": money(p.gross_salary),
        "total_deductions": money(p.total_deductions),
        "net_salary": money(p.net_salary),
        "calc_meta": p.calc_meta,
        "computed_at": iso(p.computed_at),
        "validated_at": iso(p.validated_at),
        "payslip_id": p.payslip.id if p.payslip else None,
    }


def _get_run(run_id: int) -> PayRun:
    r = db.session.get(PayRun, run_id)
    if r is None:
        raise NotFound("Pay run not found")
    return r


def _get_payroll(payroll_id: int) -> Payroll:
    p = db.session.get(Payroll, payroll_id)
    if p is None:
        raise NotFound("Payroll not found")
    return p


# ---------- pay runs ----------
@bp.post("")
@requires_roles(*PAYROLL_ROLES)
def create_run():
    j = request.get_json(silent=True) or {}
    pstart = parse_date(j.get("period_start"))
    pend = parse_date(j.get("period_end"))
    pay_date = parse_date(j.get("pay_date"))
    if not (pstart and pend and pay_date):
        raise ValidationFailed("period_start, period_end, pay_date are required (YYYY-MM-DD)")
    if pend < pstart:
        raise ValidationFailed("period_end must be >= period_start")

    name = (j.get("name") or "").strip() or f"Payrun {pstart.strftime('%b %Y')}"
    r = PayRun(name=name, period_start=pstart, period_end=pend, pay_date=pay_date,
               status="draft", total_employees=0, total_amount=0, created_by=current_user_id())
    db.session.add(r)
    db.session.commit()
    current_app.logger.info("pay run %s created for %s..%s", r.id, pstart, pend)
    return ok(_row_run(r), status=201)


@bp.get("")
@requires_roles(*PAYROLL_ROLES)
def list_runs():
    q = PayRun.query
    year = request.args.get("year", type=int)
    month = request.args.get("month", type=int)
    if month and not year:
        raise ValidationFailed("month filter needs year")
    if year:
        if month:
            lo, hi = svc.month_bounds(year, month)
        else:
            lo, hi = date(year, 1, 1), date(year, 12, 31)
        q = q.filter(PayRun.period_start >= lo, PayRun.period_start <= hi)
    if request.args.get("status"):
        q = q.filter(PayRun.status == request.args["status"])
    rows, meta = paginate(q.order_by(PayRun.period_start.desc(), PayRun.id.desc()))
    return ok([_row_run(r) for r in rows], **meta)


@bp.get("/current-month")
@requires_roles(*PAYROLL_ROLES)
def current_month_run():
    r = svc.current_month_run(request.args.get("year", type=int), request.args.get("month", type=int))
    if r is None:
        return ok(None, message="No pay run found for this month")
    return ok({**_row_run(r), "payrolls": svc.list_run_payrolls(r)})


@bp.get("/dashboard")
@requires_roles(*PAYROLL_ROLES)
def dashboard():
    data = svc.payroll_dashboard()
    data["recent_pay_runs"] = [_row_run(r) for r in data["recent_pay_runs"]]
    return ok(data)


@bp.get("/<int:run_id>")
@requires_roles(*PAYROLL_ROLES)
def get_run(run_id: int):
    return ok(_row_run(_get_run(run_id)))


@bp.post("/<int:run_id>/preview")
@requires_roles(*PAYROLL_ROLES)
def preview_run(run_id: int):
    return ok(svc.preview_run(_get_run(run_id)))


@bp.post("/<int:run_id>/process")
@requires_roles(*PAYROLL_ROLES)
def process_run(run_id: int):
    r = _get_run(run_id)
    res = svc.process_run(r)
    return ok({"pay_run": _row_run(r), **res})


@bp.get("/<int:run_id>/payrolls")
@requires_roles(*PAYROLL_ROLES)
def run_payrolls(run_id: int):
    r = _get_run(run_id)
    return ok(svc.list_run_payrolls(r), pay_run=_row_run(r))


@bp.post("/<int:run_id>/validate")
@requires_roles(*PAYROLL_ROLES)
def validate_run(run_id: int):
    r = _get_run(run_id)
    count = svc.validate_all(r)
    return ok({"validated": count, "pay_run": _row_run(r)})


# ---------- payrolls ----------
@payrolls_bp.get("/payrolls/<int:payroll_id>")
@requires_roles()
def get_payroll(payroll_id: int):
    p = _get_payroll(payroll_id)
    ensure_own_record(p.employee_id)
    return ok(_row_payroll(p))


@payrolls_bp.patch("/payrolls/<int:payroll_id>")
@requires_roles(*PAYROLL_ROLES)
def patch_payroll(payroll_id: int):
    p = _get_payroll(payroll_id)
    j = request.get_json(silent=True) or {}
    svc.update_payroll(p, j.get("gross_salary"), j.get("total_deductions"), j.get("net_salary"))
    return ok(_row_payroll(p))


@payrolls_bp.post("/payrolls/<int:payroll_id>/validate")
@requires_roles(*PAYROLL_ROLES)
def validate_payroll(payroll_id: int):
    p = _get_payroll(payroll_id)
    completed = svc.validate_payroll(p)
    return ok(_row_payroll(p), run_completed=completed)


@payrolls_bp.get("/employees/<int:emp_id>/payrolls")
@requires_roles()
def employee_payrolls(emp_id: int):
    ensure_own_record(emp_id)
    get_employee_or_404(emp_id)
    q = (Payroll.query
         .filter(Payroll.employee_id == emp_id)
         .order_by(Payroll.id.desc()))
    rows, meta = paginate(q)
    return ok([_row_payroll(p) for p in rows], **meta)
