"""
JWT helpers and route decorators.

Tokens are issued by /api/auth/login and sent back as
``Authorization: Bearer <token>``. Decorated views receive the loaded
``User`` as their first positional argument.
"""

import datetime
from functools import wraps

import jwt
from flask import current_app, jsonify, request

from ..extensions import db
from ..models import User

STAFF_ROLES = ("BARBER", "STYLIST", "ADMIN")


def is_admin(role):
    return role == "ADMIN"


def is_barber_or_admin(role):
    return role in STAFF_ROLES


def is_client(role):
    return role == "CLIENT"


def is_staff(role):
    """Barbers and stylists, without admins."""
    return role in ("BARBER", "STYLIST")


def generate_token(user):
    payload = {
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "exp": datetime.datetime.utcnow()
        + datetime.timedelta(hours=current_app.config.get("JWT_EXPIRATION_HOURS", 24)),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def get_user_from_request():
    """Return ``(user, error_message)`` for the bearer token on the current request."""
    token = request.headers.get("Authorization")
    if not token:
        return None, "Token is missing"

    if token.startswith("Bearer "):
        token = token[7:]

    try:
        data = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None, "Token has expired"
    except jwt.InvalidTokenError:
        return None, "Token is invalid"

    user = db.session.get(User, data.get("user_id"))
    if not user:
        return None, "User not found"
    return user, None


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        current_user, error = get_user_from_request()
        if error:
            return jsonify({"error": "Unauthorized", "message": error}), 401
        return f(current_user, *args, **kwargs)

    return decorated


def optional_token(f):
    """Like token_required, but anonymous callers get ``None``."""

    @wraps(f)
    def decorated(*args, **kwargs):
        current_user = None
        if request.headers.get("Authorization"):
            current_user, _ = get_user_from_request()
        return f(current_user, *args, **kwargs)

    return decorated


def roles_required(*roles):
    """Must be stacked under token_required."""

    def decorator(f):
        @wraps(f)
        def decorated(current_user, *args, **kwargs):
            if current_user.role not in roles:
                return jsonify({"error": "Forbidden", "message": "Insufficient permissions"}), 403
            return f(current_user, *args, **kwargs)

        return decorated

    return decorator


admin_required = roles_required("ADMIN")
staff_required = roles_required(*STAFF_ROLES)
