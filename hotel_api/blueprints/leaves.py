from datetime import datetime

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hotel_api.common.auth import current_context, requires_roles
from hotel_api.common.http import ok, fail, json_body, iso
from hotel_api.common.paging import page_limit
from hotel_api.models.leave import Leave
from hotel_api.services.leave_service import LeaveService

bp = Blueprint("leaves", __name__, url_prefix="/api/v1/leaves")

APPROVER_ROLES = ("manager",)

def _row(x: Leave):
    emp = x.employee
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "employee_name": emp.full_name if emp else None,
        "employee_number": emp.employee_number if emp else None,
        "establishment_id": emp.establishment_id if emp else None,
        "type": x.type,
        "start_date": iso(x.start_date),
        "end_date": iso(x.end_date),
        "days": x.days,
        "reason": x.reason,
        "status": x.status,
        "approved_by": x.approved_by_user_id,
        "approved_at": iso(x.approved_at),
        "rejection_reason": x.rejection_reason,
        "created_at": iso(x.created_at),
    }

def _filters():
    return {
        "employee_id": request.args.get("employee_id", type=int),
        "establishment_id": request.args.get("establishment_id", type=int),
        "type": request.args.get("type"),
        "status": request.args.get("status"),
        "start_date": request.args.get("from") or request.args.get("start_date"),
        "end_date": request.args.get("to") or request.args.get("end_date"),
    }

@bp.get("")
@jwt_required()
def list_leaves():
    page, limit = page_limit()
    res = LeaveService.get_all(_filters(), page, limit, context=current_context())
    return ok([_row(x) for x in res["data"]], **res["pagination"])

@bp.get("/pending")
@jwt_required()
def list_pending():
    return ok([_row(x) for x in LeaveService.get_pending(current_context())])

@bp.get("/summary")
@jwt_required()
def summary():
    return ok(LeaveService.get_summary(_filters(), current_context()))

@bp.get("/employee/<int:emp_id>")
@jwt_required()
def by_employee(emp_id):
    year = request.args.get("year", type=int)
    return ok([_row(x) for x in LeaveService.get_by_employee(emp_id, year, current_context())])

@bp.get("/balance/<int:emp_id>")
@jwt_required()
def balance(emp_id):
    year = request.args.get("year", type=int) or datetime.utcnow().year
    return ok(LeaveService.get_balance(emp_id, year, current_context()))

@bp.get("/<int:leave_id>")
@jwt_required()
def get_leave(leave_id):
    return ok(_row(LeaveService.get_by_id(leave_id, current_context())))

@bp.post("")
@jwt_required()
def create_leave():
    leave = LeaveService.create(json_body(), current_context())
    return ok(_row(leave), status=201)

@bp.patch("/<int:leave_id>")
@jwt_required()
def update_leave(leave_id):
    return ok(_row(LeaveService.update(leave_id, json_body(), current_context())))

@bp.delete("/<int:leave_id>")
@requires_roles(*APPROVER_ROLES)
def delete_leave(leave_id):
    if not LeaveService.delete(leave_id, current_context()):
        return fail("Leave not found", status=404, code="NOT_FOUND")
    return ok({"id": leave_id, "deleted": True})

@bp.post("/<int:leave_id>/approve")
@requires_roles(*APPROVER_ROLES)
def approve(leave_id):
    ctx = current_context()
    return ok(_row(LeaveService.approve(leave_id, ctx.get_user_id(), ctx)))

@bp.post("/<int:leave_id>/reject")
@requires_roles(*APPROVER_ROLES)
def reject(leave_id):
    ctx = current_context()
    reason = (json_body().get("reason") or "").strip()
    return ok(_row(LeaveService.reject(leave_id, ctx.get_user_id(), reason, ctx)))

@bp.post("/<int:leave_id>/cancel")
@jwt_required()
def cancel(leave_id):
    return ok(_row(LeaveService.cancel(leave_id, current_context())))
