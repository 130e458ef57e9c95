from datetime import date, datetime, timedelta

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hotel_api.common.auth import from_jwt, requires_roles
from hotel_api.common.http import ok, fail, parse_date, iso
from hotel_api.services.access_log import EstablishmentAccessLogger
from hotel_api.services.analytics_service import AnalyticsService, PERIOD_FORMATS
from hotel_api.services.scoping import ensure_access

bp = Blueprint("analytics", __name__, url_prefix="/api/v1/analytics")

def _scope():
    """
    (establishment_id, start, end, error_response). Scoped callers default to
    their own establishment; the range defaults to the current month.
    """
    ctx = from_jwt("analytics")
    est_id = request.args.get("establishment_id", type=int)
    if est_id is None and not ctx.can_access_all():
        est_id = ctx.get_establishment_id()
    if est_id is None:
        return None, None, None, fail("establishment_id is required", status=422)

    today = date.today()
    start = parse_date(request.args.get("start_date")) or today.replace(day=1)
    end = parse_date(request.args.get("end_date")) or today
    if end < start:
        return None, None, None, fail("end_date must be on or after start_date", status=422)

    ensure_access(ctx, est_id, "analytics", est_id)
    return est_id, start, end, None

@bp.get("/financial-summary")
@jwt_required()
def financial_summary():
    est_id, start, end, err = _scope()
    if err:
        return err
    return ok(AnalyticsService.get_financial_summary(est_id, start, end),
              establishment_id=est_id, start_date=start.isoformat(), end_date=end.isoformat())

@bp.get("/revenue")
@jwt_required()
def revenue_by_period():
    est_id, start, end, err = _scope()
    if err:
        return err
    group_by = request.args.get("group_by", "day")
    if group_by not in PERIOD_FORMATS:
        return fail(f"group_by must be one of {', '.join(PERIOD_FORMATS)}", status=422)
    return ok(AnalyticsService.get_revenue_by_period(est_id, start, end, group_by), group_by=group_by)

@bp.get("/expenses")
@jwt_required()
def expenses_by_category():
    est_id, start, end, err = _scope()
    if err:
        return err
    return ok(AnalyticsService.get_expenses_by_category(est_id, start, end))

@bp.get("/occupancy")
@jwt_required()
def occupancy():
    est_id, start, end, err = _scope()
    if err:
        return err
    return ok({
        "establishment_id": est_id,
        "occupancy_rate": AnalyticsService.get_occupancy_rate(est_id, start, end),
        "bookings": AnalyticsService.get_booking_stats(est_id, start, end),
    })

# ---------- access audit (global roles only) ----------

def _since():
    days = request.args.get("days", default=7, type=int)
    return datetime.utcnow() - timedelta(days=max(days, 0))

@bp.get("/access-log/stats")
@requires_roles("super_admin")
def access_stats():
    return ok(EstablishmentAccessLogger.get_stats(_since()))

def _log_row(r):
    return {
        "id": r.id,
        "timestamp": iso(r.timestamp),
        "user_id": r.user_id,
        "user_role": r.user_role,
        "user_establishment_id": r.user_establishment_id,
        "action": r.action,
        "resource_type": r.resource_type,
        "resource_id": r.resource_id,
        "resource_establishment_id": r.resource_establishment_id,
        "allowed": r.allowed,
        "reason": r.reason,
        "ip_address": r.ip_address,
    }

def _limit():
    return min(request.args.get("limit", default=100, type=int), 500)

@bp.get("/access-log/violations")
@requires_roles("super_admin")
def access_violations():
    return ok([_log_row(r) for r in EstablishmentAccessLogger.get_violations(_since(), _limit())])

@bp.get("/access-log/users/<string:user_id>")
@requires_roles("super_admin")
def access_user_history(user_id):
    return ok([_log_row(r) for r in EstablishmentAccessLogger.get_user_history(user_id, _limit())])
