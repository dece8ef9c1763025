from datetime import datetime

import bcrypt
from flask import Blueprint, jsonify, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import GENDERS, User
from ..utils.auth_utils import generate_token, token_required
from ..utils.format_utils import EMAIL_PATTERN

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/signup", methods=["POST"])
def signup_user():
    """
    POST /api/auth/signup
    Purpose: Register a new client account.
    Input: JSON with name, email, password and optional phone / gender.

    Behavior:
    - Password must be at least 6 characters
    - Email must be unique
    - Every self-registered account is a CLIENT; staff are created by admins
    """
    try:
        data = request.get_json(force=True)
        name = (data.get("name") or "").strip()
        email = (data.get("email") or "").strip().lower()
        password = data.get("password")
        phone = data.get("phone")
        gender = data.get("gender")

        if not email or not password or not name:
            return jsonify({
                "status": "error",
                "message": "Missing required fields (name, email, password)"
            }), 400

        if not EMAIL_PATTERN.match(email):
            return jsonify({
                "status": "error",
                "message": "Invalid email format"
            }), 400

        if len(password) < 6:
            return jsonify({
                "status": "error",
                "message": "Password must be at least 6 characters"
            }), 400

        if gender and gender not in GENDERS:
            return jsonify({
                "status": "error",
                "message": f"Gender must be one of {', '.join(GENDERS)}"
            }), 400

        existing = db.session.scalar(select(User).where(User.email == email))
        if existing:
            return jsonify({
                "status": "error",
                "message": "Email already exists"
            }), 409

        hashed_pw = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())

        user = User(
            name=name,
            email=email,
            password_hash=hashed_pw,
            role="CLIENT",
            phone=phone,
            gender=gender,
        )
        db.session.add(user)
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "User registered successfully",
            "user": user.to_dict()
        }), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Database integrity error",
            "details": str(e.orig)
        }), 400

    except Exception as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/login", methods=["POST"])
def login_user():
    try:
        data = request.get_json(force=True)
        email = (data.get("email") or "").strip().lower()
        password = data.get("password")

        if not email or not password:
            return jsonify({
                "status": "error",
                "message": "Email and password required"
            }), 400

        user = db.session.scalar(select(User).where(User.email == email))
        if not user or not user.password_hash:
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        stored_hash = user.password_hash
        if isinstance(stored_hash, str):
            stored_hash = stored_hash.encode("utf-8")

        if not bcrypt.checkpw(password.encode("utf-8"), stored_hash):
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        user.last_login = datetime.now()
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "Login successful",
            "token": generate_token(user),
            "user": user.to_dict()
        }), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/me", methods=["GET"])
@token_required
def get_current_user(current_user):
    """
    GET /api/auth/me
    Purpose: Return the authenticated user, with the barber profile id for staff.
    """
    response = {"status": "success", "user": current_user.to_dict()}
    response["user"]["barber_id"] = current_user.barber.id if current_user.barber else None
    return jsonify(response), 200
