from __future__ import annotations

import logging
from datetime import date, datetime

from hotel_api.extensions import db
from hotel_api.common.errors import (
    NotFoundError,
    ValidationError,
    InsufficientBalanceError,
    LeaveOverlapError,
    InvalidStatusTransitionError,
)
from hotel_api.common.http import parse_date
from hotel_api.common.paging import paginate
from hotel_api.models.employee import Employee
from hotel_api.models.leave import Leave, LEAVE_TYPES, ACTIVE_LEAVE_STATUSES
from hotel_api.services.scoping import (
    ensure_access,
    get_employee_or_404,
    scoped_establishment_id,
    validate_employee_relationship,
)

log = logging.getLogger(__name__)

ANNUAL_ALLOWANCE = 22

# pending -> approved|rejected|cancelled, approved -> cancelled
_TRANSITIONS = {
    "pending": {"approved", "rejected", "cancelled"},
    "approved": {"cancelled"},
}

_UPDATABLE = ("type", "start_date", "end_date", "reason")


def _dates(data: dict, current: Leave | None = None):
    start = parse_date(data.get("start_date")) if "start_date" in data else (current.start_date if current else None)
    end = parse_date(data.get("end_date")) if "end_date" in data else (current.end_date if current else None)
    if not start or not end:
        raise ValidationError("start_date and end_date are required (YYYY-MM-DD)")
    if end < start:
        raise ValidationError("end_date must be on or after start_date")
    return start, end


def _find_overlap(employee_id, start: date, end: date, exclude_id=None) -> Leave | None:
    q = Leave.query.filter(
        Leave.employee_id == employee_id,
        Leave.status.in_(ACTIVE_LEAVE_STATUSES),
        Leave.start_date <= end,
        Leave.end_date >= start,
    )
    if exclude_id is not None:
        q = q.filter(Leave.id != exclude_id)
    return q.first()


def _year_bounds(year: int):
    return date(year, 1, 1), date(year, 12, 31)


def _scoped_query(filters: dict, context):
    q = Leave.query.join(Employee, Leave.employee_id == Employee.id)

    est_id = scoped_establishment_id(context, filters.get("establishment_id"))
    if (context is not None and not context.can_access_all()) or est_id is not None:
        q = q.filter(Employee.establishment_id == est_id)

    if filters.get("employee_id"):
        q = q.filter(Leave.employee_id == filters["employee_id"])
    if filters.get("type"):
        q = q.filter(Leave.type == filters["type"])
    if filters.get("status"):
        q = q.filter(Leave.status == filters["status"])
    d_from = parse_date(filters.get("start_date"))
    d_to = parse_date(filters.get("end_date"))
    if d_from:
        q = q.filter(Leave.start_date >= d_from)
    if d_to:
        q = q.filter(Leave.start_date <= d_to)
    return q


class LeaveService:
    """Leave requests. Every method takes an optional EstablishmentServiceContext;
    None means an internal call with no scoping."""

    # ---------- CRUD ----------

    @staticmethod
    def create(data: dict, context=None) -> Leave:
        leave_type = (data.get("type") or "").strip().lower()
        if leave_type not in LEAVE_TYPES:
            raise ValidationError(f"type must be one of {', '.join(LEAVE_TYPES)}")
        start, end = _dates(data)

        # row lock serialises concurrent requests for the same employee
        emp = validate_employee_relationship(data.get("employee_id"), context, "leave", lock=True)
        days = Leave.calculate_days(start, end)

        if leave_type == "annual":
            balance = LeaveService.get_balance(emp.id, date.today().year)
            if balance["annual"]["remaining"] < days:
                raise InsufficientBalanceError(balance["annual"]["remaining"], days)

        existing = _find_overlap(emp.id, start, end)
        if existing:
            raise LeaveOverlapError(existing.id)

        leave = Leave(
            employee_id=emp.id,
            type=leave_type,
            start_date=start,
            end_date=end,
            days=days,
            reason=data.get("reason"),
            status="pending",
        )
        db.session.add(leave)
        db.session.commit()
        log.info("leave %s created for employee %s (%s, %s days)", leave.id, emp.id, leave_type, days)
        return leave

    @staticmethod
    def get_by_id(leave_id, context=None) -> Leave:
        leave = db.session.get(Leave, leave_id)
        if not leave:
            raise NotFoundError("Leave not found", {"leave_id": leave_id})
        ensure_access(context, leave.employee.establishment_id, "leave", leave.id)
        return leave

    @staticmethod
    def get_all(filters: dict | None = None, page: int = 1, limit: int = 10, context=None) -> dict:
        q = _scoped_query(filters or {}, context).order_by(Leave.start_date.desc(), Leave.id.desc())
        return paginate(q, page, limit)

    @staticmethod
    def update(leave_id, data: dict, context=None) -> Leave:
        """Status is not editable here; use approve/reject/cancel."""
        leave = db.session.get(Leave, leave_id)
        if not leave:
            raise NotFoundError("Leave not found", {"leave_id": leave_id})
        ensure_access(context, leave.employee.establishment_id, "leave", leave.id, action="update")

        # approved annual days this leave already holds against its employee's balance
        year = date.today().year
        held = 0
        if leave.status == "approved" and leave.type == "annual" and leave.start_date.year == year:
            held = leave.days or 0

        employee_id = leave.employee_id
        if "employee_id" in data and str(data["employee_id"]) != str(leave.employee_id):
            employee_id = validate_employee_relationship(data["employee_id"], context, "leave", leave.id).id
            held = 0

        if "type" in data:
            t = (data.get("type") or "").strip().lower()
            if t not in LEAVE_TYPES:
                raise ValidationError(f"type must be one of {', '.join(LEAVE_TYPES)}")
            data = {**data, "type": t}

        start, end = _dates(data, leave)
        days = Leave.calculate_days(start, end)

        if data.get("type", leave.type) == "annual" and leave.status in ACTIVE_LEAVE_STATUSES:
            remaining = LeaveService.get_balance(employee_id, year)["annual"]["remaining"] + held
            if remaining < days:
                raise InsufficientBalanceError(remaining, days)

        existing = _find_overlap(employee_id, start, end, exclude_id=leave.id)
        if existing and leave.status in ACTIVE_LEAVE_STATUSES:
            raise LeaveOverlapError(existing.id)

        for k in _UPDATABLE:
            if k in data:
                setattr(leave, k, data[k])
        leave.employee_id = employee_id
        leave.start_date, leave.end_date = start, end
        leave.days = days
        db.session.commit()
        return leave

    @staticmethod
    def delete(leave_id, context=None) -> bool:
        leave = db.session.get(Leave, leave_id)
        if not leave:
            return False
        ensure_access(context, leave.employee.establishment_id, "leave", leave.id, action="delete")
        db.session.delete(leave)
        db.session.commit()
        return True

    # ---------- workflow ----------

    @staticmethod
    def _transition(leave_id, target: str, context) -> Leave:
        # always re-read; never trust a caller-supplied record
        leave = db.session.get(Leave, leave_id)
        if not leave:
            raise NotFoundError("Leave not found", {"leave_id": leave_id})
        ensure_access(context, leave.employee.establishment_id, "leave", leave.id, action="update")
        if target not in _TRANSITIONS.get(leave.status, ()):
            raise InvalidStatusTransitionError("leave", leave.status, target)
        leave.status = target
        return leave

    @staticmethod
    def approve(leave_id, approved_by, context=None) -> Leave:
        leave = LeaveService._transition(leave_id, "approved", context)
        leave.approved_by_user_id = approved_by
        leave.approved_at = datetime.utcnow()
        db.session.commit()
        log.info("leave %s approved by user %s", leave.id, approved_by)
        return leave

    @staticmethod
    def reject(leave_id, approved_by, reason: str, context=None) -> Leave:
        if not (reason or "").strip():
            raise ValidationError("A rejection reason is required")
        leave = LeaveService._transition(leave_id, "rejected", context)
        leave.approved_by_user_id = approved_by
        leave.approved_at = datetime.utcnow()
        leave.rejection_reason = reason.strip()
        db.session.commit()
        log.info("leave %s rejected by user %s", leave.id, approved_by)
        return leave

    @staticmethod
    def cancel(leave_id, context=None) -> Leave:
        leave = LeaveService._transition(leave_id, "cancelled", context)
        db.session.commit()
        log.info("leave %s cancelled", leave.id)
        return leave

    # ---------- queries ----------

    @staticmethod
    def get_by_employee(employee_id, year: int | None = None, context=None) -> list[Leave]:
        emp = get_employee_or_404(employee_id)
        ensure_access(context, emp.establishment_id, "employee", emp.id)
        q = Leave.query.filter(Leave.employee_id == emp.id)
        if year:
            lo, hi = _year_bounds(int(year))
            q = q.filter(Leave.start_date >= lo, Leave.start_date <= hi)
        return q.order_by(Leave.start_date.desc()).all()

    @staticmethod
    def get_pending(context=None) -> list[Leave]:
        return (
            _scoped_query({"status": "pending"}, context)
            .order_by(Leave.start_date.asc(), Leave.id.asc())
            .all()
        )

    @staticmethod
    def get_balance(employee_id, year: int, context=None) -> dict:
        """
        Annual allowance is a flat 22 days per calendar year; sick and unpaid
        days are reported without a cap. Only approved leaves count.
        """
        emp = get_employee_or_404(employee_id)
        ensure_access(context, emp.establishment_id, "employee", emp.id)

        lo, hi = _year_bounds(int(year))
        rows = (
            db.session.query(Leave.type, db.func.coalesce(db.func.sum(Leave.days), 0))
            .filter(
                Leave.employee_id == emp.id,
                Leave.status == "approved",
                Leave.start_date >= lo,
                Leave.start_date <= hi,
            )
            .group_by(Leave.type)
            .all()
        )
        used = {t: int(n or 0) for t, n in rows}
        annual_used = used.get("annual", 0)
        return {
            "employee_id": emp.id,
            "year": int(year),
            "annual": {
                "total": ANNUAL_ALLOWANCE,
                "used": annual_used,
                "remaining": ANNUAL_ALLOWANCE - annual_used,
            },
            "sick": {"used": used.get("sick", 0)},
            "unpaid": {"used": used.get("unpaid", 0)},
        }

    @staticmethod
    def get_summary(filters: dict | None = None, context=None) -> dict:
        filters = {k: v for k, v in (filters or {}).items() if k != "status"}
        q = _scoped_query(filters, context)
        rows = (
            q.with_entities(Leave.status, db.func.count(Leave.id), db.func.coalesce(db.func.sum(Leave.days), 0))
            .group_by(Leave.status)
            .all()
        )
        counts = {s: (int(n), int(d or 0)) for s, n, d in rows}
        return {
            "total_requests": sum(n for n, _ in counts.values()),
            "pending": counts.get("pending", (0, 0))[0],
            "approved": counts.get("approved", (0, 0))[0],
            "rejected": counts.get("rejected", (0, 0))[0],
            "cancelled": counts.get("cancelled", (0, 0))[0],
            "total_days": counts.get("approved", (0, 0))[1],
        }
