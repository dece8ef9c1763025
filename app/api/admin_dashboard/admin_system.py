import os
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import Settings
from ...services.cleanup_service import clean_old_appointments
from ...utils.auth_utils import admin_required, token_required
from ...utils.cron_utils import is_cron_authorized
from ...utils.s3_utils import check_upload, store_upload

admin_system_bp = Blueprint("admin_system_bp", __name__, url_prefix="/api")

BUILD_TIME = datetime.now().isoformat()

SETTINGS_FIELDS = (
    "shop_name",
    "address",
    "phone",
    "email",
    "latitude",
    "longitude",
    "facebook",
    "instagram",
    "twitter",
    "tiktok",
    "youtube",
    "whatsapp",
    "male_gender_image",
    "female_gender_image",
)

DEFAULT_SETTINGS = {
    "shop_name": "JBookMe",
    "address": "123 Main Street",
    "phone": "+1 (555) 123-4567",
    "email": "info@jbookme.com",
    "latitude": 40.7128,
    "longitude": -74.0060,
}


def _current_settings():
    return db.session.scalar(select(Settings).order_by(Settings.id).limit(1))


@admin_system_bp.route("/settings", methods=["GET"])
def get_settings():
    """
    Public shop settings
    ---
    tags:
      - Settings
    summary: Shop name, contact details, location and social links
    description: Default settings are created on the first read.
    responses:
      200:
        description: The settings record
    """
    try:
        settings = _current_settings()
        if settings is None:
            settings = Settings(**DEFAULT_SETTINGS)
            db.session.add(settings)
            db.session.commit()
        return jsonify(settings.to_dict())

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error fetching settings: {e}")
        return jsonify({"error": "Failed to fetch settings", "details": str(e)}), 500


@admin_system_bp.route("/settings", methods=["PUT"])
@token_required
@admin_required
def update_settings(current_user):
    """Only the fields present in the body change."""
    try:
        data = request.get_json(silent=True) or {}
        settings = _current_settings()
        if settings is None:
            settings = Settings(shop_name=data.get("shop_name") or DEFAULT_SETTINGS["shop_name"])
            db.session.add(settings)

        for field in SETTINGS_FIELDS:
            if field in data:
                setattr(settings, field, data[field])
        if not settings.shop_name:
            return jsonify({"error": "shop_name cannot be empty"}), 400

        db.session.commit()
        return jsonify(settings.to_dict())

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating settings: {e}")
        return jsonify({"error": "Failed to update settings", "details": str(e)}), 500


@admin_system_bp.route("/settings/gender-images", methods=["POST"])
@token_required
@admin_required
def upload_gender_image(current_user):
    """
    Upload the men's or women's cover image
    ---
    tags:
      - Settings
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: file
        type: file
        required: true
      - in: formData
        name: gender
        type: string
        enum: [male, female]
        required: true
    responses:
      200:
        description: Image stored and saved on the settings record
      400:
        description: Missing file, bad gender, not an image or larger than 10MB
    """
    file = request.files.get("file")
    gender = (request.form.get("gender") or "").lower()
    if not file:
        return jsonify({"error": "No file provided"}), 400
    if gender not in ("male", "female"):
        return jsonify({"error": 'Invalid gender. Must be "male" or "female"'}), 400

    error = check_upload(file, label="Image")
    if error:
        return jsonify({"error": error}), 400

    try:
        url = store_upload(file, "gender-images")

        settings = _current_settings()
        if settings is None:
            settings = Settings(shop_name=DEFAULT_SETTINGS["shop_name"])
            db.session.add(settings)
        if gender == "male":
            settings.male_gender_image = url
        else:
            settings.female_gender_image = url
        db.session.commit()

        return jsonify({
            "success": True,
            "url": url,
            "gender": gender,
            "settings": settings.to_dict(),
            "message": f"{'Men' if gender == 'male' else 'Women'}'s image updated successfully",
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error uploading gender image: {e}")
        return jsonify({"error": "Failed to upload image", "details": str(e)}), 500


@admin_system_bp.route("/version", methods=["GET"])
def get_version():
    response = jsonify({
        "version": current_app.config.get("APP_VERSION"),
        "build_time": BUILD_TIME,
        "git_commit": os.getenv("GIT_COMMIT_SHA"),
        "environment": os.getenv("FLASK_ENV") or "production",
    })
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    return response


@admin_system_bp.route("/cron/clean-appointments", methods=["GET"])
def cron_clean_appointments():
    """Daily sweep of COMPLETED and CANCELLED appointments older than yesterday."""
    if not is_cron_authorized():
        return jsonify({"error": "Unauthorized"}), 401

    try:
        deleted = clean_old_appointments(datetime.now())
        return jsonify({
            "success": True,
            "deleted_count": deleted,
            "message": f"Deleted {deleted} old appointments",
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[CRON] Error cleaning appointments: {e}")
        return jsonify({"error": "Error cleaning appointments", "details": str(e)}), 500
