# payroll_api/blueprints/auth.py
from flask import Blueprint, current_app
from flask_jwt_extended import create_access_token, create_refresh_token, jwt_required, get_jwt_identity

from payroll_api.extensions import db
from payroll_api.common.auth import token_claims
from payroll_api.common.http import ok, fail, json_body
from payroll_api.models.user import User

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "roles": u.role_codes(),
        "employee_id": u.employee_id,
    }


@bp.post("/login")
def login():
    d = json_body()
    email = (d.get("email") or "").strip().lower()
    password = d.get("password") or ""
    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", 401)
    if (u.status or "active").lower() != "active":
        return fail("Account is disabled", 403)

    claims = token_claims(u)
    access = create_access_token(identity=str(u.id), additional_claims=claims)
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"roles": claims["roles"]})
    current_app.logger.info("login user=%s roles=%s", u.id, claims["roles"])
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    u = db.session.get(User, int(get_jwt_identity()))
    if not u:
        return fail("User not found", 404)
    access = create_access_token(identity=str(u.id), additional_claims=token_claims(u))
    return ok({"access": access})


@bp.get("/me")
@jwt_required()
def me():
    u = db.session.get(User, int(get_jwt_identity()))
    if not u:
        return fail("User not found", 404)
    return ok(_user_payload(u))
