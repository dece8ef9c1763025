# Time-bounded promotions: public listing, admin management and the activation job
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import PROMOTION_STATUSES, ROLES, Promotion, User
from ...services.email_service import email_service
from ...services.notification_service import create_notification
from ...services.promotions_processor import PROMOTION_LINK, compute_promotion_status, process_promotions
from ...utils.auth_utils import admin_required, token_required
from ...utils.cron_utils import is_cron_authorized
from ...utils.time_utils import parse_iso_datetime

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")
admin_promotions_bp = Blueprint("admin_promotions", __name__, url_prefix="/api/admin/promotions")

NOTIFICATION_CHANNELS = ("email", "notification", "both")


def _target_role(value):
    if not value or value == "ALL":
        return None
    return value


@promotions_bp.route("", methods=["GET"])
def list_active_promotions():
    """Active promotions whose window contains now, newest first."""
    try:
        now = datetime.now()
        promotions = db.session.scalars(
            select(Promotion)
            .where(
                Promotion.status == "ACTIVE",
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            )
            .order_by(Promotion.created_at.desc())
        ).all()
        return jsonify([p.to_dict() for p in promotions])

    except Exception as e:
        current_app.logger.error(f"Error fetching promotions: {e}")
        return jsonify({"error": "Failed to fetch promotions", "details": str(e)}), 500


@promotions_bp.route("/process", methods=["GET", "POST"])
def run_promotions_job():
    """
    GET|POST /api/promotions/process
    Cron entry point: expires finished promotions and activates and
    announces the ones whose start date has arrived.
    """
    if not is_cron_authorized():
        return jsonify({"error": "Unauthorized"}), 401

    try:
        result = process_promotions(datetime.now())
        return jsonify({"success": True, **result})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error processing promotions: {e}")
        return jsonify({"error": "Failed to process promotions", "details": str(e)}), 500


@admin_promotions_bp.route("", methods=["GET"])
@token_required
@admin_required
def list_promotions(current_user):
    """
    GET /api/admin/promotions?status=ALL|INACTIVE|<status>
    INACTIVE means anything that is not ACTIVE.
    """
    try:
        query = select(Promotion)
        status = request.args.get("status")
        if status == "INACTIVE":
            query = query.where(Promotion.status != "ACTIVE")
        elif status in PROMOTION_STATUSES:
            query = query.where(Promotion.status == status)

        promotions = db.session.scalars(query.order_by(Promotion.created_at.desc())).all()
        return jsonify([p.to_dict() for p in promotions])

    except Exception as e:
        current_app.logger.error(f"Error fetching promotions: {e}")
        return jsonify({"error": "Failed to fetch promotions", "details": str(e)}), 500


@admin_promotions_bp.route("", methods=["POST"])
@token_required
@admin_required
def create_promotion(current_user):
    """
    POST /api/admin/promotions
    Input: JSON { title, message, start_date, end_date, discount?, target_role?,
                  send_now?, notification_type? ("email" | "notification" | "both") }

    Behavior:
    - Status follows the date window (SCHEDULED, ACTIVE or EXPIRED)
    - send_now on an ACTIVE promotion announces it immediately; the
      activation job then leaves it alone
    """
    try:
        data = request.get_json(silent=True) or {}
        title = data.get("title")
        message = data.get("message")
        if not title or not message or not data.get("start_date") or not data.get("end_date"):
            return jsonify({"error": "Missing required fields (title, message, start_date, end_date)"}), 400

        try:
            start = parse_iso_datetime(data["start_date"])
            end = parse_iso_datetime(data["end_date"])
        except ValueError:
            return jsonify({"error": "Invalid date format"}), 400

        if end <= start:
            return jsonify({"error": "End date must be after start date"}), 400

        target_role = _target_role(data.get("target_role"))
        if target_role and target_role not in ROLES:
            return jsonify({"error": f"target_role must be ALL or one of {', '.join(ROLES)}"}), 400

        channel = data.get("notification_type") or "both"
        if channel not in NOTIFICATION_CHANNELS:
            return jsonify({"error": "notification_type must be email, notification or both"}), 400

        discount = data.get("discount")
        promotion = Promotion(
            title=title,
            message=message,
            discount=str(discount).strip() if discount not in (None, "") else None,
            start_date=start,
            end_date=end,
            status=compute_promotion_status(start, end, datetime.now()),
            target_role=target_role,
            created_by=current_user.id,
        )
        db.session.add(promotion)
        db.session.commit()

        if data.get("send_now") and promotion.status == "ACTIVE":
            promotion.sent_count = _announce(promotion, channel)
            db.session.commit()

        return jsonify({"promotion": promotion.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating promotion: {e}")
        return jsonify({"error": "Failed to create promotion", "details": str(e)}), 500


def _announce(promotion, channel):
    query = select(User)
    if promotion.target_role:
        query = query.where(User.role == promotion.target_role)
    users = db.session.scalars(query).all()

    sent = 0
    if channel in ("email", "both"):
        for user in users:
            result = email_service.send_promotion(
                user.email, user.name, promotion.title, promotion.message, promotion.discount
            )
            if result["success"]:
                sent += 1

    if channel in ("notification", "both"):
        message = (
            f"{promotion.message} - {promotion.discount}" if promotion.discount else promotion.message
        )
        for user in users:
            create_notification(user.id, "NEW_MESSAGE", f"🎉 {promotion.title}", message, link=PROMOTION_LINK)
            sent += 1

    current_app.logger.info(f"[PROMOTIONS] promotion={promotion.id} notifications sent={sent}")
    return sent


@admin_promotions_bp.route("/<int:promotion_id>", methods=["PUT"])
@token_required
@admin_required
def update_promotion(current_user, promotion_id):
    try:
        promotion = db.session.get(Promotion, promotion_id)
        if not promotion:
            return jsonify({"error": "Promotion not found"}), 404

        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if status is not None and status not in PROMOTION_STATUSES:
            return jsonify({"error": f"status must be one of {', '.join(PROMOTION_STATUSES)}"}), 400

        try:
            start = parse_iso_datetime(data["start_date"]) if data.get("start_date") else promotion.start_date
            end = parse_iso_datetime(data["end_date"]) if data.get("end_date") else promotion.end_date
        except ValueError:
            return jsonify({"error": "Invalid date format"}), 400
        if end <= start:
            return jsonify({"error": "End date must be after start date"}), 400

        if "title" in data:
            promotion.title = data["title"]
        if "message" in data:
            promotion.message = data["message"]
        if "discount" in data:
            promotion.discount = data["discount"]
        if "target_role" in data:
            promotion.target_role = _target_role(data["target_role"])
        promotion.start_date = start
        promotion.end_date = end

        if status is not None:
            promotion.status = status
        elif "is_active" in data:
            promotion.status = "ACTIVE" if data["is_active"] else "CANCELLED"

        db.session.commit()
        return jsonify({"promotion": promotion.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating promotion: {e}")
        return jsonify({"error": "Failed to update promotion", "details": str(e)}), 500


@admin_promotions_bp.route("/<int:promotion_id>", methods=["PATCH"])
@token_required
@admin_required
def cancel_promotion(current_user, promotion_id):
    """PATCH /api/admin/promotions/<id> with { action: "cancel" }"""
    data = request.get_json(silent=True) or {}
    if data.get("action") != "cancel":
        return jsonify({"error": "Invalid action"}), 400

    promotion = db.session.get(Promotion, promotion_id)
    if not promotion:
        return jsonify({"error": "Promotion not found"}), 404

    promotion.status = "CANCELLED"
    db.session.commit()
    return jsonify({"message": "Promotion cancelled", "promotion": promotion.to_dict()})


@admin_promotions_bp.route("/<int:promotion_id>", methods=["DELETE"])
@token_required
@admin_required
def delete_promotion(current_user, promotion_id):
    try:
        promotion = db.session.get(Promotion, promotion_id)
        if not promotion:
            return jsonify({"error": "Promotion not found"}), 404

        db.session.delete(promotion)
        db.session.commit()
        return jsonify({"message": "Promotion deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting promotion: {e}")
        return jsonify({"error": "Failed to delete promotion", "details": str(e)}), 500
