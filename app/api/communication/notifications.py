from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import delete, func, select, update

from app.extensions import db
from ...models import Notification, PushSubscription
from ...services.reminder_processor import process_appointment_reminders
from ...utils.auth_utils import token_required
from ...utils.cron_utils import is_cron_authorized

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")
push_bp = Blueprint("push", __name__, url_prefix="/api/push")


@notifications_bp.route("", methods=["GET"])
@token_required
def list_notifications(current_user):
    """
    List notifications for the current user
    ---
    tags:
      - Notifications
    summary: Newest first, optionally only unread ones
    parameters:
      - in: query
        name: unread
        type: boolean
        required: false
      - in: query
        name: limit
        type: integer
        required: false
        description: Defaults to 50
    responses:
      200:
        description: Notifications and the unread count
        schema:
          type: object
          properties:
            notifications:
              type: array
              items:
                type: object
            unread_count:
              type: integer
      401:
        description: Missing or invalid token
    """
    try:
        limit = request.args.get("limit", default=50, type=int) or 50
        query = select(Notification).where(Notification.user_id == current_user.id)
        if request.args.get("unread", "").lower() == "true":
            query = query.where(Notification.is_read.is_(False))

        notifications = db.session.scalars(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        ).all()
        return jsonify({
            "notifications": [n.to_dict() for n in notifications],
            "unread_count": _unread_count(current_user.id),
        })

    except Exception as e:
        current_app.logger.error(f"Error fetching notifications: {e}")
        return jsonify({"error": "Failed to fetch notifications", "details": str(e)}), 500


def _unread_count(user_id):
    return db.session.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id, Notification.is_read.is_(False)
        )
    )


@notifications_bp.route("/unread-count", methods=["GET"])
@token_required
def unread_count(current_user):
    """
    Unread notification count for the bell badge
    ---
    tags:
      - Notifications
    responses:
      200:
        description: Count of unread notifications
        schema:
          type: object
          properties:
            count:
              type: integer
              example: 3
    """
    return jsonify({"count": _unread_count(current_user.id)})


@notifications_bp.route("/<int:notification_id>/read", methods=["PATCH"])
@token_required
def mark_read(current_user, notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        return jsonify({"error": "Notification not found"}), 404

    notification.is_read = True
    db.session.commit()
    return jsonify({"notification": notification.to_dict()})


@notifications_bp.route("/read-all", methods=["PATCH"])
@token_required
def mark_all_read(current_user):
    updated = db.session.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()
    return jsonify({"message": "All notifications marked as read", "updated": updated})


@notifications_bp.route("/process", methods=["GET", "POST"])
def process_notifications():
    """
    Send due appointment reminders
    ---
    tags:
      - Notifications
    summary: Cron entry point for the 24h, 12h, 2h and 30 minute reminders
    description: Also sends the thank-you message for completed appointments.
      Authorised with the CRON_SECRET as a Bearer token, X-Cron-Secret header or ?token=.
    responses:
      200:
        description: Counts of what was sent
      401:
        description: Missing or wrong cron secret
    """
    if not is_cron_authorized():
        return jsonify({"error": "Unauthorized"}), 401

    try:
        result = process_appointment_reminders(datetime.now())
        return jsonify({"success": True, **result})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error processing notifications: {e}")
        return jsonify({"error": "Failed to process notifications", "details": str(e)}), 500


@push_bp.route("/public-key", methods=["GET"])
def public_key():
    """VAPID public key the browser needs to subscribe."""
    key = current_app.config.get("VAPID_PUBLIC_KEY")
    if not key:
        return jsonify({"error": "Web push is not configured"}), 503
    return jsonify({"public_key": key})


@push_bp.route("/subscribe", methods=["POST"])
@token_required
def subscribe(current_user):
    """
    Register a browser push subscription
    ---
    tags:
      - Notifications
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - endpoint
            - keys
          properties:
            endpoint:
              type: string
            keys:
              type: object
              properties:
                p256dh:
                  type: string
                auth:
                  type: string
    responses:
      201:
        description: Subscription stored (or moved to the current user)
      400:
        description: Malformed subscription
    """
    data = request.get_json(silent=True) or {}
    endpoint = data.get("endpoint")
    keys = data.get("keys") or {}
    if not endpoint or not keys.get("p256dh") or not keys.get("auth"):
        return jsonify({"error": "Invalid subscription"}), 400

    subscription = db.session.scalar(
        select(PushSubscription).where(PushSubscription.endpoint == endpoint)
    )
    if subscription:
        subscription.user_id = current_user.id
        subscription.p256dh = keys["p256dh"]
        subscription.auth = keys["auth"]
    else:
        db.session.add(
            PushSubscription(
                user_id=current_user.id,
                endpoint=endpoint,
                p256dh=keys["p256dh"],
                auth=keys["auth"],
            )
        )
    db.session.commit()
    return jsonify({"success": True}), 201


@push_bp.route("/subscribe", methods=["DELETE"])
@token_required
def unsubscribe(current_user):
    data = request.get_json(silent=True) or {}
    endpoint = data.get("endpoint")
    if not endpoint:
        return jsonify({"error": "endpoint is required"}), 400

    removed = db.session.execute(
        delete(PushSubscription)
        .where(PushSubscription.endpoint == endpoint, PushSubscription.user_id == current_user.id)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()
    return jsonify({"success": True, "removed": removed})
