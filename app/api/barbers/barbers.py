# Public barber directory and admin management of barber accounts
import bcrypt
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from ...models import GENDERS, Appointment, Barber, Review, User
from ...services.account_service import delete_user_account
from ...services.availability_service import create_default_availability
from ...utils.auth_utils import admin_required, is_client, staff_required, token_required
from ...utils.s3_utils import check_upload, store_upload

barbers_bp = Blueprint("barbers", __name__, url_prefix="/api/barbers")

BARBER_FIELDS = (
    "bio",
    "specialties",
    "hourly_rate",
    "profile_image",
    "phone",
    "facebook_url",
    "instagram_url",
    "twitter_url",
    "tiktok_url",
    "youtube_url",
    "whatsapp_url",
    "contact_email",
    "zelle_email",
    "zelle_phone",
    "cashapp_tag",
)
STAFF_ACCOUNT_ROLES = ("BARBER", "STYLIST", "ADMIN")


def _barber_summary(barber):
    data = barber.to_dict()
    data["services"] = [s.to_dict() for s in barber.services if s.is_active]
    average = db.session.scalar(
        select(func.avg(Review.rating)).where(Review.barber_id == barber.id)
    )
    data["avg_rating"] = round(float(average), 1) if average is not None else 0
    data["total_reviews"] = db.session.scalar(
        select(func.count(Review.id)).where(Review.barber_id == barber.id)
    )
    data["total_appointments"] = db.session.scalar(
        select(func.count(Appointment.id)).where(Appointment.barber_id == barber.id)
    )
    return data


@barbers_bp.route("", methods=["GET"])
def list_barbers():
    """
    GET /api/barbers?gender=MALE
    Active barbers with their active services and rating aggregates.
    """
    try:
        query = select(Barber).where(Barber.is_active.is_(True))
        gender = request.args.get("gender")
        if gender in ("MALE", "FEMALE", "BOTH"):
            query = query.where(Barber.gender == gender)

        barbers = db.session.scalars(query.order_by(Barber.created_at.asc())).all()
        return jsonify([_barber_summary(b) for b in barbers])

    except Exception as e:
        current_app.logger.error(f"Error fetching barbers: {e}")
        return jsonify({"error": "Failed to fetch barbers", "details": str(e)}), 500


@barbers_bp.route("", methods=["POST"])
@token_required
@admin_required
def create_barber(current_user):
    """
    POST /api/barbers
    Purpose: Create a barber profile.

    Input: either { user_id, ...profile } to promote an existing user, or
    { name, email, password, role?, ...profile } to create the account too.
    A default weekly schedule is created either way.
    """
    try:
        data = request.get_json(silent=True) or {}
        gender = data.get("gender") or "BOTH"
        if gender not in GENDERS:
            return jsonify({"error": f"Gender must be one of {', '.join(GENDERS)}"}), 400

        user_id = data.get("user_id")
        if user_id:
            user = db.session.get(User, user_id)
            if not user:
                return jsonify({"error": "User not found"}), 404
            if user.barber is not None:
                return jsonify({"error": "User already has a barber profile"}), 409
            if is_client(user.role):
                user.role = "BARBER"
        else:
            name = data.get("name")
            email = (data.get("email") or "").strip().lower()
            password = data.get("password")
            if not name or not email:
                return jsonify({"error": "Name and email are required"}), 400
            if not password:
                return jsonify({"error": "Password is required"}), 400
            if len(password) < 6:
                return jsonify({"error": "Password must be at least 6 characters"}), 400

            if db.session.scalar(select(User).where(User.email == email)):
                return jsonify({"error": "A user with this email already exists"}), 400

            role = data.get("role") if data.get("role") in STAFF_ACCOUNT_ROLES else "BARBER"
            user = User(
                name=name,
                email=email,
                password_hash=bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()),
                role=role,
                image=data.get("profile_image"),
            )
            db.session.add(user)
            db.session.flush()

        barber = Barber(user_id=user.id, gender=gender)
        for field in BARBER_FIELDS:
            if data.get(field) not in (None, ""):
                setattr(barber, field, data[field])
        db.session.add(barber)
        db.session.flush()

        create_default_availability(barber.id)
        db.session.commit()
        print(f"[BARBER] Created default availability schedule for barber {barber.id}")

        return jsonify({"barber": barber.to_dict()}), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({"error": "Database integrity error", "details": str(e.orig)}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating barber: {e}")
        return jsonify({"error": "Failed to create barber", "details": str(e)}), 500


@barbers_bp.route("/<int:barber_id>", methods=["GET"])
def get_barber(barber_id):
    barber = db.session.get(Barber, barber_id)
    if not barber:
        return jsonify({"error": "Barber not found"}), 404

    data = _barber_summary(barber)
    data["availability"] = [a.to_dict() for a in barber.availability]
    return jsonify(data)


@barbers_bp.route("/<int:barber_id>", methods=["PUT"])
@token_required
@admin_required
def update_barber(current_user, barber_id):
    try:
        barber = db.session.get(Barber, barber_id)
        if not barber:
            return jsonify({"error": "Barber not found"}), 404

        data = request.get_json(silent=True) or {}
        if "gender" in data:
            if data["gender"] not in GENDERS:
                return jsonify({"error": f"Gender must be one of {', '.join(GENDERS)}"}), 400
            barber.gender = data["gender"]

        for field in BARBER_FIELDS:
            if field in data:
                setattr(barber, field, data[field])
        if "is_active" in data:
            barber.is_active = bool(data["is_active"])

        # Name / email / image live on the user row
        if "name" in data:
            barber.user.name = data["name"]
        if "email" in data:
            barber.user.email = (data["email"] or "").strip().lower()
        if "profile_image" in data:
            barber.user.image = data["profile_image"]

        db.session.commit()
        return jsonify({"barber": barber.to_dict()})

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({"error": "Email already in use", "details": str(e.orig)}), 409

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating barber: {e}")
        return jsonify({"error": "Failed to update barber", "details": str(e)}), 500


@barbers_bp.route("/<int:barber_id>", methods=["DELETE"])
@token_required
@admin_required
def delete_barber(current_user, barber_id):
    """
    DELETE /api/barbers/<id>
    Cancels the barber's active bookings, then removes the barber together
    with their user account and everything attached to it.
    """
    try:
        barber = db.session.get(Barber, barber_id)
        if not barber:
            return jsonify({"error": "Barber not found"}), 404

        delete_user_account(barber.user_id)
        db.session.commit()

        return jsonify({"message": "Barber and user deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting barber: {e}")
        return jsonify({"error": "Failed to delete barber", "details": str(e)}), 500


@barbers_bp.route("/upload-image", methods=["POST"])
@token_required
@staff_required
def upload_barber_image(current_user):
    """
    POST /api/barbers/upload-image
    Input: multipart form with "image" (image/*, at most 10MB)
    Returns the public URL; the caller saves it on the barber.
    """
    try:
        image_file = request.files.get("image")
        if not image_file:
            return jsonify({"error": "No file provided"}), 400

        error = check_upload(image_file, ("image/",), 10 * 1024 * 1024, label="Image")
        if error:
            return jsonify({"error": error}), 400

        image_url = store_upload(image_file, "barbers")
        return jsonify({"image_url": image_url})

    except Exception as e:
        current_app.logger.error(f"Error uploading barber image: {e}")
        return jsonify({"error": "Failed to upload image", "details": str(e)}), 500
