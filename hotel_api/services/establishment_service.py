"""
Establishment management.

get_active() and list_for_selector() are served from the Flask-Caching store
for ESTABLISHMENT_CACHE_TTL seconds. Writes below do not touch the cache, so
those two listings can lag behind by up to one TTL.
"""
from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import or_

from hotel_api.extensions import db, cache
from hotel_api.common.errors import APIError, ValidationError, EstablishmentNotFoundError
from hotel_api.common.paging import paginate
from hotel_api.models.establishment import Establishment
from hotel_api.models.user import User
from hotel_api.services.scoping import ensure_access

log = logging.getLogger(__name__)

MANAGER_ROLES = ("manager", "super_admin")
PRICING_MODES = ("nightly", "monthly")

_FIELDS = ("name", "description", "city", "address", "country", "phone",
           "email", "website", "pricing_mode", "services", "is_active")


def _ttl() -> int:
    return int(current_app.config.get("ESTABLISHMENT_CACHE_TTL", 600))


def _cached(key: str, load):
    value = cache.get(key)
    if value is None:
        value = load()
        cache.set(key, value, timeout=_ttl())
    return value


def _get_or_404(establishment_id) -> Establishment:
    est = db.session.get(Establishment, establishment_id)
    if not est:
        raise EstablishmentNotFoundError(establishment_id)
    return est


def _check_manager(manager_id, message="Manager not found") -> User:
    mgr = db.session.get(User, manager_id)
    if not mgr:
        raise APIError("NOT_FOUND", message, 404, {"manager_id": manager_id})
    if mgr.role not in MANAGER_ROLES:
        raise ValidationError("User must have manager or super_admin role", {"manager_id": manager_id})
    return mgr


def _load_staff(staff_ids) -> list[User]:
    ids = [int(i) for i in (staff_ids or [])]
    if not ids:
        return []
    users = User.query.filter(User.id.in_(ids)).all()
    if len(users) != len(set(ids)):
        raise ValidationError("One or more staff members not found", {"staff_ids": ids})
    return users


def _apply(est: Establishment, data: dict):
    for k in _FIELDS:
        if k in data:
            setattr(est, k, data[k])
    # nested payload shape {"location": {...}, "contacts": {...}} is accepted too
    for group in ("location", "contacts"):
        for k, v in (data.get(group) or {}).items():
            if k in _FIELDS:
                setattr(est, k, v)
    if est.pricing_mode not in PRICING_MODES:
        raise ValidationError(f"pricing_mode must be one of {', '.join(PRICING_MODES)}")


class EstablishmentService:

    @staticmethod
    def create(data: dict) -> Establishment:
        if not (data.get("name") or "").strip():
            raise ValidationError("name is required")
        city = data.get("city") or (data.get("location") or {}).get("city")
        if not city:
            raise ValidationError("city is required")

        manager = _check_manager(data["manager_id"]) if data.get("manager_id") else None
        staff = _load_staff(data.get("staff_ids"))

        est = Establishment(pricing_mode="nightly", services=[], is_active=True)
        _apply(est, data)
        est.manager = manager
        est.staff = staff
        db.session.add(est)
        db.session.flush()

        for u in staff:
            u.establishment_id = est.id
        db.session.commit()
        log.info("establishment %s created (%s)", est.id, est.name)
        return est

    @staticmethod
    def get_by_id(establishment_id, context=None) -> Establishment:
        est = _get_or_404(establishment_id)
        ensure_access(context, est.id, "establishment", est.id)
        return est

    @staticmethod
    def get_all(filters: dict | None = None, page: int = 1, limit: int = 10, context=None) -> dict:
        filters = filters or {}
        q = Establishment.query
        if context is not None and not context.can_access_all():
            q = q.filter(Establishment.id == context.get_establishment_id())
        if filters.get("city"):
            q = q.filter(Establishment.city.ilike(f"%{filters['city']}%"))
        if filters.get("pricing_mode"):
            q = q.filter(Establishment.pricing_mode == filters["pricing_mode"])
        if filters.get("is_active") is not None:
            q = q.filter(Establishment.is_active == bool(filters["is_active"]))
        if filters.get("manager_id"):
            q = q.filter(Establishment.manager_id == filters["manager_id"])
        if filters.get("search"):
            like = f"%{filters['search']}%"
            q = q.filter(or_(
                Establishment.name.ilike(like),
                Establishment.description.ilike(like),
                Establishment.city.ilike(like),
            ))
        return paginate(q.order_by(Establishment.created_at.desc(), Establishment.id.desc()), page, limit)

    @staticmethod
    def update(establishment_id, data: dict, context=None) -> Establishment:
        est = _get_or_404(establishment_id)
        ensure_access(context, est.id, "establishment", est.id, action="update")

        if data.get("manager_id") and str(data["manager_id"]) != str(est.manager_id):
            new_mgr = _check_manager(data["manager_id"], "New manager not found")
            if est.manager is not None and est.manager.establishment_id == est.id:
                est.manager.establishment_id = None
            new_mgr.establishment_id = est.id
            est.manager = new_mgr

        if "staff_ids" in data:
            staff = _load_staff(data["staff_ids"])
            for u in est.staff:
                if u.establishment_id == est.id:
                    u.establishment_id = None
            for u in staff:
                u.establishment_id = est.id
            est.staff = staff

        _apply(est, data)
        db.session.commit()
        return est

    @staticmethod
    def delete(establishment_id, context=None) -> bool:
        est = db.session.get(Establishment, establishment_id)
        if not est:
            return False
        ensure_access(context, est.id, "establishment", est.id, action="delete")
        User.query.filter(User.establishment_id == est.id).update(
            {User.establishment_id: None}, synchronize_session=False
        )
        db.session.delete(est)
        db.session.commit()
        log.info("establishment %s deleted", establishment_id)
        return True

    # ---------- listings ----------

    @staticmethod
    def get_by_city(city: str) -> list[Establishment]:
        return (
            Establishment.query
            .filter(Establishment.city.ilike(f"%{city}%"), Establishment.is_active.is_(True))
            .order_by(Establishment.name)
            .all()
        )

    @staticmethod
    def get_by_manager(manager_id) -> list[Establishment]:
        return Establishment.query.filter_by(manager_id=manager_id).order_by(Establishment.name).all()

    @staticmethod
    def get_active() -> list[dict]:
        def load():
            rows = Establishment.query.filter_by(is_active=True).order_by(Establishment.name).all()
            return [e.to_dict() for e in rows]
        return _cached("establishments:active", load)

    @staticmethod
    def list_for_selector(context=None) -> list[dict]:
        """Minimal {id, name, city} options for the caller's establishment picker."""
        scoped = context is not None and not context.can_access_all()
        est_id = context.get_establishment_id() if scoped else None
        key = f"establishments:selector:{est_id}" if scoped else "establishments:selector:all"

        def load():
            q = Establishment.query.filter_by(is_active=True)
            if scoped:
                q = q.filter(Establishment.id == est_id)
            return [{"id": e.id, "name": e.name, "city": e.city} for e in q.order_by(Establishment.name)]
        return _cached(key, load)

    # ---------- staff ----------

    @staticmethod
    def add_staff(establishment_id, user_id, context=None) -> Establishment:
        est = _get_or_404(establishment_id)
        ensure_access(context, est.id, "establishment", est.id, action="update")
        user = db.session.get(User, user_id)
        if not user:
            raise APIError("NOT_FOUND", "Staff member not found", 404, {"user_id": user_id})
        if user.role != "staff":
            raise ValidationError("User must have staff role", {"user_id": user_id})
        if user not in est.staff:
            est.staff.append(user)
        user.establishment_id = est.id
        db.session.commit()
        return est

    @staticmethod
    def remove_staff(establishment_id, user_id, context=None) -> Establishment:
        est = _get_or_404(establishment_id)
        ensure_access(context, est.id, "establishment", est.id, action="update")
        est.staff = [u for u in est.staff if str(u.id) != str(user_id)]
        user = db.session.get(User, user_id)
        if user and user.establishment_id == est.id:
            user.establishment_id = None
        db.session.commit()
        return est

    @staticmethod
    def toggle_active(establishment_id, context=None) -> Establishment:
        est = _get_or_404(establishment_id)
        ensure_access(context, est.id, "establishment", est.id, action="update")
        est.is_active = not est.is_active
        db.session.commit()
        log.info("establishment %s is_active=%s", est.id, est.is_active)
        return est
