from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hotel_api.common.auth import current_context, requires_roles
from hotel_api.common.http import ok, fail, json_body, iso, num
from hotel_api.common.paging import page_limit
from hotel_api.models.employee import Employee
from hotel_api.services.employee_service import EmployeeService

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

HR_ROLES = ("manager",)

def _row(x: Employee):
    return {
        "id": x.id,
        "employee_number": x.employee_number,
        "first_name": x.first_name,
        "last_name": x.last_name,
        "full_name": x.full_name,
        "email": x.email,
        "phone": x.phone,

        "establishment_id": x.establishment_id,
        "establishment_name": x.establishment.name if x.establishment else None,
        "user_id": x.user_id,

        "position": x.position,
        "department": x.department,
        "hire_date": iso(x.hire_date),
        "contract_type": x.contract_type,
        "salary": num(x.salary),
        "status": x.status,
        "benefits": {
            "health_insurance": bool(x.health_insurance),
            "retirement_plan": bool(x.retirement_plan),
        },
        "created_at": iso(x.created_at),
        "updated_at": iso(x.updated_at),
    }

@bp.get("")
@jwt_required()
def list_employees():
    page, limit = page_limit()
    filters = {
        "establishment_id": request.args.get("establishment_id", type=int),
        "status": request.args.get("status"),
        "department": request.args.get("department"),
        "position": request.args.get("position"),
        "q": request.args.get("q"),
    }
    res = EmployeeService.get_all(filters, page, limit, context=current_context())
    return ok([_row(e) for e in res["data"]], **res["pagination"])

@bp.get("/<int:emp_id>")
@jwt_required()
def get_employee(emp_id):
    return ok(_row(EmployeeService.get_by_id(emp_id, current_context())))

@bp.get("/by-number/<string:number>")
@jwt_required()
def get_by_number(number):
    emp = EmployeeService.get_by_employee_number(number, current_context())
    if not emp:
        return fail("Employee not found", status=404, code="NOT_FOUND")
    return ok(_row(emp))

@bp.get("/by-establishment/<int:est_id>")
@jwt_required()
def by_establishment(est_id):
    return ok([_row(e) for e in EmployeeService.get_by_establishment(est_id, current_context())])

@bp.post("")
@requires_roles(*HR_ROLES)
def create_employee():
    emp = EmployeeService.create(json_body(), current_context())
    return ok(_row(emp), status=201)

@bp.patch("/<int:emp_id>")
@requires_roles(*HR_ROLES)
def update_employee(emp_id):
    return ok(_row(EmployeeService.update(emp_id, json_body(), current_context())))

@bp.delete("/<int:emp_id>")
@requires_roles(*HR_ROLES)
def delete_employee(emp_id):
    if not EmployeeService.delete(emp_id, current_context()):
        return fail("Employee not found", status=404, code="NOT_FOUND")
    return ok({"id": emp_id, "deleted": True})
