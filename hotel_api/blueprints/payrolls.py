from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hotel_api.common.auth import current_context, requires_roles
from hotel_api.common.http import ok, fail, json_body, iso, num
from hotel_api.common.paging import page_limit
from hotel_api.models.payroll import Payroll
from hotel_api.services.payroll_service import PayrollService

bp = Blueprint("payrolls", __name__, url_prefix="/api/v1/payrolls")

PAYROLL_ROLES = ("manager", "accountant")

def _row(p: Payroll):
    emp = p.employee
    return {
        "id": p.id,
        "employee_id": p.employee_id,
        "employee_name": emp.full_name if emp else None,
        "employee_number": emp.employee_number if emp else None,
        "establishment_id": emp.establishment_id if emp else None,
        "period": {"year": p.period_year, "month": p.period_month},
        "base_salary": num(p.base_salary),
        "allowances": p.allowances or [],
        "deductions": p.deductions or [],
        "bonuses": p.bonuses or [],
        "overtime_hours": num(p.overtime_hours),
        "overtime_rate": num(p.overtime_rate),
        "total_gross": num(p.total_gross),
        "total_deductions": num(p.total_deductions),
        "net_salary": num(p.net_salary),
        "status": p.status,
        "paid_at": iso(p.paid_at),
        "notes": p.notes,
        "created_at": iso(p.created_at),
    }

def _body_period():
    body = json_body()
    try:
        return int(body.get("year")), int(body.get("month"))
    except (TypeError, ValueError):
        return None, None

def _period_args():
    year = request.args.get("year", type=int)
    month = request.args.get("month", type=int)
    if not year or not month:
        return None, None
    return year, month

@bp.get("")
@requires_roles(*PAYROLL_ROLES)
def list_payrolls():
    page, limit = page_limit()
    filters = {
        "employee_id": request.args.get("employee_id", type=int),
        "establishment_id": request.args.get("establishment_id", type=int),
        "year": request.args.get("year", type=int),
        "month": request.args.get("month", type=int),
        "status": request.args.get("status"),
    }
    res = PayrollService.get_all(filters, page, limit, context=current_context())
    return ok([_row(p) for p in res["data"]], **res["pagination"])

@bp.get("/period")
@requires_roles(*PAYROLL_ROLES)
def by_period():
    year, month = _period_args()
    if not year:
        return fail("year and month are required", status=422)
    return ok([_row(p) for p in PayrollService.get_by_period(year, month, current_context())])

@bp.get("/summary")
@requires_roles(*PAYROLL_ROLES)
def summary():
    year, month = _period_args()
    if not year:
        return fail("year and month are required", status=422)
    return ok(PayrollService.get_summary(year, month, current_context()))

@bp.get("/employee/<int:emp_id>")
@jwt_required()
def by_employee(emp_id):
    rows = PayrollService.get_by_employee(
        emp_id, request.args.get("year", type=int), request.args.get("month", type=int), current_context()
    )
    return ok([_row(p) for p in rows])

@bp.get("/<int:payroll_id>")
@requires_roles(*PAYROLL_ROLES)
def get_payroll(payroll_id):
    return ok(_row(PayrollService.get_by_id(payroll_id, current_context())))

@bp.post("")
@requires_roles(*PAYROLL_ROLES)
def create_payroll():
    return ok(_row(PayrollService.create(json_body(), current_context())), status=201)

@bp.patch("/<int:payroll_id>")
@requires_roles(*PAYROLL_ROLES)
def update_payroll(payroll_id):
    return ok(_row(PayrollService.update(payroll_id, json_body(), current_context())))

@bp.delete("/<int:payroll_id>")
@requires_roles(*PAYROLL_ROLES)
def delete_payroll(payroll_id):
    if not PayrollService.delete(payroll_id, current_context()):
        return fail("Payroll not found", status=404, code="NOT_FOUND")
    return ok({"id": payroll_id, "deleted": True})

@bp.post("/<int:payroll_id>/approve")
@requires_roles("manager")
def approve(payroll_id):
    return ok(_row(PayrollService.approve(payroll_id, current_context())))

@bp.post("/<int:payroll_id>/pay")
@requires_roles(*PAYROLL_ROLES)
def mark_paid(payroll_id):
    return ok(_row(PayrollService.mark_as_paid(payroll_id, current_context())))

@bp.post("/period/approve")
@requires_roles("manager")
def approve_period():
    year, month = _body_period()
    if not year:
        return fail("year and month are required", status=422)
    rows = PayrollService.approve_period(year, month, current_context())
    return ok([_row(p) for p in rows], count=len(rows))

@bp.post("/period/pay")
@requires_roles(*PAYROLL_ROLES)
def pay_period():
    year, month = _body_period()
    if not year:
        return fail("year and month are required", status=422)
    rows = PayrollService.mark_period_as_paid(year, month, current_context())
    return ok([_row(p) for p in rows], count=len(rows))

@bp.post("/generate")
@requires_roles(*PAYROLL_ROLES)
def generate():
    year, month = _body_period()
    if not year:
        return fail("year and month are required", status=422)
    rows = PayrollService.generate_for_all_employees(
        year, month, json_body().get("establishment_id"), current_context()
    )
    return ok([_row(p) for p in rows], status=201 if rows else 200, count=len(rows))
