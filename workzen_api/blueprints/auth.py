import re
from datetime import timedelta

from flask import Blueprint, request, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity
)

from workzen_api.common.auth import current_employee
from workzen_api.common.errors import NotFound, ValidationFailed
from workzen_api.common.http import ok, fail, parse_date
from workzen_api.extensions import db
from workzen_api.models.user import User
from workzen_api.services.salary_structures import salary_summary

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "roles": u.role_codes(),
        "employee_id": u.employee_id,
    }


def _claims(u: User):
    return {"roles": u.role_codes(), "email": u.email, "name": u.full_name}


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401)
    if u.status != "active":
        return fail("Account is disabled", status=403)

    access = create_access_token(identity=str(u.id), additional_claims=_claims(u),
                                 expires_delta=timedelta(days=1))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"roles": u.role_codes()})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if u is None:
        return fail("User not found", status=404)
    return ok({"access": create_access_token(identity=str(u.id), additional_claims=_claims(u))})


@bp.get("/me")
@jwt_required()
def me():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=404)
    return ok(_user_payload(u))


PASSWORD_RULES = (
    (r".{8,}", "at least 8 characters"),
    (r"[A-Z]", "an uppercase letter"),
    (r"[a-z]", "a lowercase letter"),
    (r"[0-9]", "a number"),
    (r"[^A-Za-z0-9]", "a special character"),
)


def _password_problems(pw: str):
    return [label for pattern, label in PASSWORD_RULES if not re.search(pattern, pw)]


@bp.put("/password")
@jwt_required()
def change_password():
    data = request.get_json(silent=True) or {}
    old = data.get("old_password") or ""
    new = data.get("new_password") or ""
    if not old:
        raise ValidationFailed("old_password is required")
    problems = _password_problems(new)
    if problems:
        raise ValidationFailed("new_password needs " + ", ".join(problems))
    if new != data.get("confirm_password"):
        raise ValidationFailed("Passwords don't match")

    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if u is None:
        raise NotFound("User not found")
    if not u.check_password(old):
        raise ValidationFailed("Current password is incorrect")
    u.set_password(new)
    db.session.commit()
    current_app.logger.info("user %s changed password", u.id)
    return ok({"message": "Password changed successfully"})


@bp.get("/me/salary")
@jwt_required()
def my_salary():
    emp = current_employee()
    if emp is None:
        raise NotFound("Employee record not found")
    on = parse_date(request.args.get("on"))
    if request.args.get("on") and on is None:
        raise ValidationFailed("on must be YYYY-MM-DD")
    return ok(salary_summary(emp, on))
