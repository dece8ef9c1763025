from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import GENDERS, User
from ...utils.auth_utils import token_required
from ...utils.format_utils import EMAIL_PATTERN
from ...utils.s3_utils import check_upload, store_upload

user_profile_bp = Blueprint("user_profile", __name__, url_prefix="/api")


def _profile(user):
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "image": user.image,
        "role": user.role,
        "gender": user.gender,
        "terms_accepted": user.terms_accepted,
        "legal_accepted_version": user.legal_accepted_version,
        "legal_accepted_at": user.legal_accepted_at.isoformat() if user.legal_accepted_at else None,
        "barber": None,
    }
    if user.barber:
        data["barber"] = {
            "id": user.barber.id,
            "profile_image": user.barber.profile_image,
            "zelle_email": user.barber.zelle_email,
            "zelle_phone": user.barber.zelle_phone,
            "cashapp_tag": user.barber.cashapp_tag,
        }
    return data


@user_profile_bp.route("/user/profile", methods=["GET"])
@token_required
def get_profile(current_user):
    """
    Get the signed-in user's profile
    ---
    tags:
      - User
    security:
      - Bearer: []
    responses:
      200:
        description: Profile, with payment handles when the user is a barber
      401:
        description: Missing or invalid token
    """
    return jsonify(_profile(current_user))


@user_profile_bp.route("/user/profile", methods=["PUT"])
@token_required
def update_profile(current_user):
    """
    Update name, email, phone or gender
    ---
    tags:
      - User
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            phone:
              type: string
            gender:
              type: string
              enum: [MALE, FEMALE, BOTH, UNISEX]
    responses:
      200:
        description: Updated profile
      400:
        description: Empty name or email, invalid email or gender, email in use, or nothing to update
    """
    try:
        data = request.get_json(silent=True) or {}
        changed = False

        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                return jsonify({"error": "Name cannot be empty"}), 400
            current_user.name = name
            changed = True

        if "gender" in data:
            gender = data["gender"]
            if gender is not None and gender not in GENDERS:
                return jsonify({"error": "Invalid gender"}), 400
            current_user.gender = gender
            changed = True

        if "phone" in data:
            current_user.phone = (data["phone"] or "").strip() or None
            changed = True

        if "email" in data:
            email = (data["email"] or "").strip().lower()
            if not email:
                return jsonify({"error": "Email cannot be empty"}), 400
            if not EMAIL_PATTERN.match(email):
                return jsonify({"error": "Invalid email format"}), 400
            owner = db.session.scalar(select(User.id).where(User.email == email))
            if owner is not None and owner != current_user.id:
                return jsonify({"error": "Email is already in use"}), 400
            current_user.email = email
            changed = True

        if not changed:
            return jsonify({"error": "No changes to update"}), 400

        db.session.commit()
        return jsonify({"message": "Profile updated", "user": _profile(current_user)})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating profile: {e}")
        return jsonify({"error": "Failed to update profile", "details": str(e)}), 500


@user_profile_bp.route("/user/profile/image", methods=["POST"])
@token_required
def upload_profile_image(current_user):
    """multipart/form-data with an "image" file (images only, up to 5MB)."""
    file = request.files.get("image")
    if not file:
        return jsonify({"error": "No image provided"}), 400

    error = check_upload(file, max_bytes=5 * 1024 * 1024, label="Image")
    if error:
        return jsonify({"error": error}), 400

    try:
        url = store_upload(file, f"profiles/{current_user.id}")
        current_user.image = url
        if current_user.barber:
            current_user.barber.profile_image = url
        db.session.commit()
        return jsonify({"message": "Profile image updated", "image_url": url})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error uploading profile image: {e}")
        return jsonify({"error": "Failed to upload image", "details": str(e)}), 500


@user_profile_bp.route("/legal/accept", methods=["POST"])
@token_required
def accept_legal(current_user):
    """
    Records acceptance of the terms and privacy policy.
    Input: JSON { version? }; defaults to the configured LEGAL_VERSION.
    """
    data = request.get_json(silent=True) or {}
    requested = data.get("version")
    version = requested.strip() if isinstance(requested, str) and requested.strip() else None
    version = version or current_app.config.get("LEGAL_VERSION") or "1.0"

    now = datetime.now()
    current_user.terms_accepted = True
    current_user.terms_version = version
    current_user.terms_accepted_at = now
    current_user.legal_accepted_version = version
    current_user.legal_accepted_at = now
    db.session.commit()

    return jsonify({"ok": True, "version": version})
