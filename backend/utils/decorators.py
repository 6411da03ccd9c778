from functools import wraps
from flask_jwt_extended import get_jwt_identity
from flask import jsonify
from rollcall.extensions import db
from rollcall.models import User


def current_user():
    user_id = get_jwt_identity()
    if not user_id:
        return None
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


def role_required(*allowed_roles):
    """
    Restrict access to users with specific roles.
    Usage: @role_required("admin", "teacher")
    """
    allowed_roles = set(role.lower() for role in allowed_roles)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user_id = get_jwt_identity()
            if not user_id:
                return jsonify({"error": "Missing or invalid JWT token"}), 401

            user = current_user()
            if not user:
                return jsonify({"error": "User not found"}), 401

            if user.role.value not in allowed_roles:
                return jsonify({"error": "Access forbidden: insufficient permissions"}), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator


def role_context():
    """RoleContext for the authenticated caller; use behind @role_required."""
    from utils.access_control import RoleContext

    user = current_user()
    return RoleContext.for_user(user) if user else None
