from flask import Blueprint
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity,
)

from hotel_api.extensions import db
from hotel_api.common.auth import user_claims
from hotel_api.common.http import ok, fail, json_body
from hotel_api.models.user import User

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

def _user_payload(u: User):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "role": u.role,
        "establishment_id": u.establishment_id,
    }

@bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401)
    if u.status != "active":
        return fail("Account disabled", status=403)

    access = create_access_token(identity=str(u.id), additional_claims=user_claims(u))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"role": u.role})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})

@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=401)
    # establishment or role may have changed since login; re-read them
    new_access = create_access_token(identity=str(u.id), additional_claims=user_claims(u))
    return ok({"access": new_access})

@bp.get("/me")
@jwt_required()
def me():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=404)
    return ok(_user_payload(u))
