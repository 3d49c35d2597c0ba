from flask import Blueprint, request, make_response

from workzen_api.common.auth import requires_roles, ensure_own_record, is_employee_only, current_employee, PAYROLL_ROLES
from workzen_api.common.errors import NotFound, ValidationFailed
from workzen_api.common.http import ok, iso, money
from workzen_api.common.paging import paginate
from workzen_api.extensions import db
from workzen_api.models.payroll.pay_run import PayRun, Payroll, Payslip
from workzen_api.services.payslip_service import PayslipService, run_brief

bp = Blueprint("payslips", __name__, url_prefix="/api/v1/payslips")
svc = PayslipService()


def _row(s: Payslip) -> dict:
    p = s.payroll
    return {
        "id": s.id,
        "payroll_id": s.payroll_id,
        "employee": s.employee.brief(),
        "pay_run": run_brief(p.pay_run) if p.pay_run else None,
        "gross_salary": money(p.gross_salary),
        "total_deductions": money(p.total_deductions),
        "net_salary": money(p.net_salary),
        "status": s.status,
        "created_at": iso(s.created_at),
    }


def _get_payslip(payslip_id: int) -> Payslip:
    s = db.session.get(Payslip, payslip_id)
    if s is None:
        raise NotFound("Payslip not found")
    ensure_own_record(s.employee_id)
    return s


@bp.get("")
@requires_roles()
def list_payslips():
    q = Payslip.query.join(Payroll, Payroll.id == Payslip.payroll_id)
    if is_employee_only():
        me = current_employee()
        q = q.filter(Payslip.employee_id == (me.id if me else -1))
    elif request.args.get("employee_id"):
        q = q.filter(Payslip.employee_id == request.args.get("employee_id", type=int))
    if request.args.get("pay_run_id"):
        q = q.filter(Payroll.pay_run_id == request.args.get("pay_run_id", type=int))
    rows, meta = paginate(q.order_by(Payslip.id.desc()))
    return ok([_row(s) for s in rows], **meta)


@bp.get("/<int:payslip_id>")
@requires_roles()
def get_payslip(payslip_id: int):
    s = _get_payslip(payslip_id)
    return ok(svc.build_payslip_dto(s.payroll, s))


@bp.get("/by-payroll/<int:payroll_id>")
@requires_roles()
def payslip_by_payroll(payroll_id: int):
    """Issued payslip for a payroll row, or a preview when none exists yet."""
    p = db.session.get(Payroll, payroll_id)
    if p is None:
        raise NotFound("Payroll not found")
    ensure_own_record(p.employee_id)
    return ok(svc.build_payslip_dto(p, p.payslip), preview=p.payslip is None)


@bp.post("/generate/<int:run_id>")
@requires_roles(*PAYROLL_ROLES)
def generate(run_id: int):
    r = db.session.get(PayRun, run_id)
    if r is None:
        raise NotFound("Pay run not found")
    return ok(svc.generate_payslips(r), status=201)


@bp.get("/<int:payslip_id>/download")
@requires_roles()
def download(payslip_id: int):
    fmt = (request.args.get("format") or "pdf").lower()
    if fmt not in ("pdf", "html"):
        raise ValidationFailed("format must be pdf or html")

    s = _get_payslip(payslip_id)
    dto = svc.build_payslip_dto(s.payroll, s)
    period = (dto["period"] or {}).get("start", "")[:7] or str(s.id)
    filename = f"PAYSLIP_{dto['employee']['code']}_{period}.{fmt}"

    if fmt == "pdf":
        resp = make_response(svc.render_payslip_pdf(dto))
        resp.headers["Content-Type"] = "application/pdf"
    else:
        resp = make_response(svc.render_payslip_html(dto))
        resp.headers["Content-Type"] = "text/html; charset=utf-8"
    resp.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return resp
