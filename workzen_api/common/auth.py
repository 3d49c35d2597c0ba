# workzen_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from workzen_api.common.errors import Forbidden
from workzen_api.common.http import fail
from workzen_api.extensions import db
from workzen_api.models.user import User
from workzen_api.models.employee import Employee
from workzen_api.models.security import Role, UserRole

# Roles allowed to see everyone's payroll data
PAYROLL_ROLES = ("hr", "payroll")


def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def current_user_id() -> Optional[int]:
    uid = get_jwt_identity()
    try:
        return int(uid) if uid is not None else None
    except (TypeError, ValueError):
        return None


def current_roles() -> Set[str]:
    """Roles from the JWT claim, falling back to a live DB read."""
    claims = get_jwt() or {}
    roles = set(claims.get("roles") or [])
    if roles:
        return roles
    uid = current_user_id()
    return _collect_roles_from_db(uid) if uid else set()


def is_employee_only() -> bool:
    roles = current_roles()
    return not (roles & {"admin", *PAYROLL_ROLES})


def current_employee() -> Optional[Employee]:
    uid = current_user_id()
    if uid is None:
        return None
    return Employee.query.filter_by(user_id=uid).first()


def ensure_own_record(employee_id: int):
    """Employees may only touch their own rows; staff roles pass through."""
    if not is_employee_only():
        return
    emp = current_employee()
    if emp is None or emp.id != employee_id:
        raise Forbidden("Insufficient permissions")


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Uses roles in JWT if present; falls back to DB.
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            uid = current_user_id()
            if uid is None:
                return fail("Unauthorized", status=401)

            roles = current_roles()
            if not roles and db.session.get(User, uid) is None:
                return fail("Unauthorized", status=401)

            if "admin" in roles:
                return fn(*args, **kwargs)

            if codes and not any(r in roles for r in codes):
                return fail("Forbidden", status=403)

            return fn(*args, **kwargs)
        return inner
    return outer
