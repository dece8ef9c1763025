import re
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import MEDIA_TYPES, BarberMedia, ManualPayment
from ...services.appointment_service import get_barber_for_user
from ...utils.auth_utils import optional_token, staff_required, token_required
from ...utils.format_utils import EMAIL_PATTERN
from ...utils.s3_utils import check_upload, store_upload
from ...utils.time_utils import parse_iso_datetime

barber_profile_bp = Blueprint("barber_profile", __name__, url_prefix="/api/barber")

CASHAPP_URL_PREFIX = re.compile(r"^https?://(www\.)?cash\.app/", re.IGNORECASE)

PROFILE_FIELDS = (
    "bio",
    "specialties",
    "hourly_rate",
    "phone",
    "facebook_url",
    "instagram_url",
    "twitter_url",
    "tiktok_url",
    "youtube_url",
    "whatsapp_url",
    "contact_email",
)

MAX_PROFILE_IMAGE_BYTES = 10 * 1024 * 1024
MAX_MEDIA_BYTES = {"PHOTO": 50 * 1024 * 1024, "VIDEO": 100 * 1024 * 1024}


def _blank_to_none(value):
    trimmed = str(value).strip()
    return trimmed or None


def normalize_zelle_phone(value):
    trimmed = str(value).strip()
    if not trimmed:
        return None
    return re.sub(r"[^0-9+]", "", trimmed) or None


def normalize_cashapp_tag(value):
    """Accepts "$tag", "tag", "@tag" or a cash.app URL and returns "$tag"."""
    raw = re.sub(r"\s+", "", str(value).strip())
    if not raw:
        return None
    tag = CASHAPP_URL_PREFIX.sub("", raw)
    tag = tag.lstrip("$").lstrip("@")
    cleaned = re.sub(r"[^a-zA-Z0-9_]", "", tag)
    return f"${cleaned}" if cleaned else None


@barber_profile_bp.route("/profile", methods=["GET"])
@token_required
@staff_required
def get_profile(current_user):
    barber = get_barber_for_user(current_user)
    if not barber:
        return jsonify({"error": "Barber profile not found"}), 404
    return jsonify(barber.to_dict())


@barber_profile_bp.route("/profile", methods=["PUT"])
@token_required
@staff_required
def update_profile(current_user):
    """
    PUT /api/barber/profile
    Purpose: Edit the signed-in barber's public profile and payout handles.

    Behavior:
    - Only keys present in the body are changed; null clears a field
    - zelle_email must look like an email
    - zelle_phone keeps digits and "+", and needs at least 10 digits
    - cashapp_tag is stored as "$tag"
    """
    try:
        data = request.get_json(silent=True) or {}

        zelle_email = data.get("zelle_email")
        if zelle_email is not None:
            zelle_email = _blank_to_none(zelle_email)
            if zelle_email and not EMAIL_PATTERN.match(zelle_email):
                return jsonify({"error": "Invalid Zelle email format"}), 400

        zelle_phone = data.get("zelle_phone")
        if zelle_phone is not None:
            zelle_phone = normalize_zelle_phone(zelle_phone)
            if zelle_phone and len(re.sub(r"\D", "", zelle_phone)) < 10:
                return jsonify({"error": "Invalid Zelle phone number"}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        for field in PROFILE_FIELDS:
            if field in data:
                setattr(barber, field, data[field])
        if "zelle_email" in data:
            barber.zelle_email = zelle_email
        if "zelle_phone" in data:
            barber.zelle_phone = zelle_phone
        if "cashapp_tag" in data:
            tag = data["cashapp_tag"]
            barber.cashapp_tag = normalize_cashapp_tag(tag) if tag is not None else None

        db.session.commit()
        return jsonify({"message": "Profile updated successfully", "barber": barber.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating barber profile: {e}")
        return jsonify({"error": "Failed to update profile", "details": str(e)}), 500


@barber_profile_bp.route("/profile/image", methods=["POST"])
@token_required
@staff_required
def upload_profile_image(current_user):
    """
    POST /api/barber/profile/image
    Input: multipart form with "image" (image/*, at most 10MB)
    Updates both the barber profile image and the user avatar.
    """
    try:
        image_file = request.files.get("image")
        if not image_file:
            return jsonify({"error": "No file provided"}), 400

        error = check_upload(image_file, ("image/",), MAX_PROFILE_IMAGE_BYTES, label="Image")
        if error:
            return jsonify({"error": error}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        image_url = store_upload(image_file, f"profiles/barbers/{current_user.id}")
        barber.profile_image = image_url
        current_user.image = image_url
        db.session.commit()

        return jsonify({"message": "Profile image updated", "image_url": image_url})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error uploading barber profile image: {e}")
        return jsonify({"error": "Failed to upload image", "details": str(e)}), 500


@barber_profile_bp.route("/manual-payments", methods=["GET"])
@token_required
@staff_required
def list_manual_payments(current_user):
    barber = get_barber_for_user(current_user)
    if not barber:
        return jsonify({"error": "Only barbers can view manual payments"}), 403

    payments = db.session.scalars(
        select(ManualPayment)
        .where(ManualPayment.barber_id == barber.id)
        .order_by(ManualPayment.date.desc())
    ).all()
    return jsonify([p.to_dict() for p in payments])


@barber_profile_bp.route("/manual-payments", methods=["POST"])
@token_required
@staff_required
def create_manual_payment(current_user):
    """
    POST /api/barber/manual-payments
    Input: JSON { amount, payment_method, description?, client_name?, date? }
    Records a cash / Zelle / Cash App payment taken outside the app.
    """
    try:
        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Only barbers can register manual payments"}), 403

        data = request.get_json(silent=True) or {}
        try:
            amount = float(data.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0
        if amount <= 0:
            return jsonify({"error": "Invalid amount"}), 400

        if not data.get("payment_method"):
            return jsonify({"error": "Payment method is required"}), 400

        payment = ManualPayment(
            barber_id=barber.id,
            amount=amount,
            payment_method=data["payment_method"],
            description=data.get("description") or None,
            client_name=data.get("client_name") or None,
            date=parse_iso_datetime(data.get("date")) or datetime.now(),
        )
        db.session.add(payment)
        db.session.commit()

        return jsonify({"success": True, "payment": payment.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating manual payment: {e}")
        return jsonify({"error": "Failed to register manual payment", "details": str(e)}), 500


@barber_profile_bp.route("/media", methods=["GET"])
@optional_token
def list_media(current_user):
    """
    GET /api/barber/media?barber_id=<id>
    Public portfolio of a barber. Without barber_id, the signed-in barber's own media.
    """
    barber_id = request.args.get("barber_id", type=int)
    if not barber_id:
        if current_user is None:
            return jsonify({"error": "barber_id is required"}), 400
        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404
        barber_id = barber.id

    media = db.session.scalars(
        select(BarberMedia)
        .where(BarberMedia.barber_id == barber_id, BarberMedia.is_active.is_(True))
        .order_by(BarberMedia.created_at.desc())
    ).all()
    return jsonify([m.to_dict() for m in media])


@barber_profile_bp.route("/media", methods=["POST"])
@token_required
@staff_required
def add_media(current_user):
    """
    POST /api/barber/media
    Input: multipart form with "file", "media_type" (PHOTO | VIDEO), "title"?, "description"?
    Photos up to 50MB, videos up to 100MB.
    """
    try:
        media_file = request.files.get("file")
        media_type = (request.form.get("media_type") or "").upper()

        if not media_file:
            return jsonify({"error": "File is required"}), 400
        if media_type not in MEDIA_TYPES:
            return jsonify({"error": "Invalid media type. Must be PHOTO or VIDEO"}), 400

        prefix = "image/" if media_type == "PHOTO" else "video/"
        error = check_upload(media_file, (prefix,), MAX_MEDIA_BYTES[media_type], label=media_type.title())
        if error:
            return jsonify({"error": error}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        now = datetime.now()
        media_url = store_upload(media_file, f"barber-media/{barber.id}/{now.year}/{now.month:02d}")

        media = BarberMedia(
            barber_id=barber.id,
            media_type=media_type,
            media_url=media_url,
            title=request.form.get("title") or None,
            description=request.form.get("description") or None,
        )
        db.session.add(media)
        db.session.commit()

        return jsonify({"message": "Media added successfully", "media": media.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error adding barber media: {e}")
        return jsonify({"error": "Failed to add media", "details": str(e)}), 500


@barber_profile_bp.route("/media/<int:media_id>", methods=["DELETE"])
@token_required
@staff_required
def delete_media(current_user, media_id):
    try:
        media = db.session.get(BarberMedia, media_id)
        if not media:
            return jsonify({"error": "Media not found"}), 404

        barber = get_barber_for_user(current_user)
        if current_user.role != "ADMIN" and (not barber or media.barber_id != barber.id):
            return jsonify({"error": "You can only delete your own media"}), 403

        db.session.delete(media)
        db.session.commit()
        return jsonify({"message": "Media deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting barber media: {e}")
        return jsonify({"error": "Failed to delete media", "details": str(e)}), 500
