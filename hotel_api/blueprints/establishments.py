from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hotel_api.common.auth import current_context, requires_roles
from hotel_api.common.http import ok, fail, json_body
from hotel_api.common.paging import page_limit
from hotel_api.services.establishment_service import EstablishmentService

bp = Blueprint("establishments", __name__, url_prefix="/api/v1/establishments")

def _bool_arg(name):
    v = request.args.get(name)
    if v is None or v == "":
        return None
    return v.lower() in ("1", "true", "yes")

@bp.get("")
@jwt_required()
def list_establishments():
    page, limit = page_limit()
    filters = {
        "city": request.args.get("city"),
        "pricing_mode": request.args.get("pricing_mode"),
        "is_active": _bool_arg("is_active"),
        "manager_id": request.args.get("manager_id", type=int),
        "search": request.args.get("q") or request.args.get("search"),
    }
    res = EstablishmentService.get_all(filters, page, limit, context=current_context())
    return ok([e.to_dict() for e in res["data"]], **res["pagination"])

@bp.get("/active")
@jwt_required()
def list_active():
    return ok(EstablishmentService.get_active())

@bp.get("/selector")
@jwt_required()
def selector():
    return ok(EstablishmentService.list_for_selector(current_context()))

@bp.get("/by-city/<string:city>")
@requires_roles()
def by_city(city):
    return ok([e.to_dict() for e in EstablishmentService.get_by_city(city)])

@bp.get("/by-manager/<int:manager_id>")
@requires_roles()
def by_manager(manager_id):
    ctx = current_context()
    # a manager may list their own establishments; everyone else needs a global role
    if not ctx.can_access_all() and str(ctx.get_user_id()) != str(manager_id):
        return fail("Forbidden", status=403)
    return ok([e.to_dict() for e in EstablishmentService.get_by_manager(manager_id)])

@bp.get("/<int:est_id>")
@jwt_required()
def get_establishment(est_id):
    return ok(EstablishmentService.get_by_id(est_id, current_context()).to_dict())

@bp.post("")
@requires_roles("super_admin")
def create_establishment():
    est = EstablishmentService.create(json_body())
    return ok(est.to_dict(), status=201)

@bp.patch("/<int:est_id>")
@requires_roles("manager")
def update_establishment(est_id):
    est = EstablishmentService.update(est_id, json_body(), current_context())
    return ok(est.to_dict())

@bp.delete("/<int:est_id>")
@requires_roles("super_admin")
def delete_establishment(est_id):
    if not EstablishmentService.delete(est_id, current_context()):
        return fail("Establishment not found", status=404, code="ESTABLISHMENT_NOT_FOUND")
    return ok({"id": est_id, "deleted": True})

@bp.post("/<int:est_id>/toggle-active")
@requires_roles("super_admin")
def toggle_active(est_id):
    return ok(EstablishmentService.toggle_active(est_id, current_context()).to_dict())

@bp.post("/<int:est_id>/staff")
@requires_roles("manager")
def add_staff(est_id):
    user_id = json_body().get("user_id")
    if not user_id:
        return fail("user_id is required", status=422)
    return ok(EstablishmentService.add_staff(est_id, user_id, current_context()).to_dict())

@bp.delete("/<int:est_id>/staff/<int:user_id>")
@requires_roles("manager")
def remove_staff(est_id, user_id):
    return ok(EstablishmentService.remove_staff(est_id, user_id, current_context()).to_dict())
