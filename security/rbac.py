from functools import wraps
from flask import g, jsonify

OPERATOR_ROLE = "OPERATOR"
ADMIN_ROLE = "ADMIN"

def has_role(role_name: str, user=None) -> bool:
    user = user if user is not None else getattr(g, "user", None)
    if not user:
        return False
    names = {r.name for r in user.roles}
    return ADMIN_ROLE in names or role_name in names

def is_operator(user=None) -> bool:
    return has_role(OPERATOR_ROLE, user)

def require_roles(*role_names: str):
    """
    Usage: @require_roles("OPERATOR")
    ADMIN passes every role check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if ADMIN_ROLE not in user_roles and not user_roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
