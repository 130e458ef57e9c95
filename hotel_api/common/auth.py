# hotel_api/common/auth.py
from __future__ import annotations

from functools import wraps

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from hotel_api.common.errors import MissingEstablishmentContextError
from hotel_api.common.http import fail
from hotel_api.extensions import db
from hotel_api.models.user import User
from hotel_api.services.establishment_context import EstablishmentServiceContext, GLOBAL_ROLES


# ---------- helpers ----------

def user_claims(u: User) -> dict:
    """Claims minted into every token; the request context is rebuilt from them."""
    return {
        "role": u.role,
        "establishment_id": u.establishment_id,
        "email": u.email,
        "name": u.full_name,
    }


def _current_user_id():
    uid = get_jwt_identity()
    try:
        return int(uid) if uid is not None else None
    except (TypeError, ValueError):
        return None


def current_context() -> EstablishmentServiceContext | None:
    """
    EstablishmentServiceContext for the caller.
    Uses token claims when present; falls back to the users table for tokens
    minted without them.
    """
    uid = _current_user_id()
    if uid is None:
        return None
    claims = get_jwt() or {}
    if claims.get("role"):
        ctx = EstablishmentServiceContext(uid, claims["role"], claims.get("establishment_id"))
    else:
        u = db.session.get(User, uid)
        if not u:
            return None
        ctx = EstablishmentServiceContext.from_user(u)
    return ctx


def from_jwt(operation: str) -> EstablishmentServiceContext:
    """current_context() for handlers that cannot run unscoped."""
    ctx = current_context()
    if ctx is None:
        raise MissingEstablishmentContextError(operation=operation, user_id=get_jwt_identity())
    return ctx


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has one of the given roles.
    - Global roles (root/super_admin/admin) always pass.
    - Injects nothing; handlers call current_context() themselves.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            ctx = current_context()
            if ctx is None:
                return fail("Unauthorized", status=401)

            role = ctx.get_role()
            if role in GLOBAL_ROLES:
                return fn(*args, **kwargs)
            if codes and role not in codes:
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer
