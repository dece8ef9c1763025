# Direct messages between clients, staff and the admin team
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import and_, delete, func, or_, select, update

from app.extensions import db
from ...models import Barber, Message, User
from ...services.notification_service import create_notification
from ...utils.auth_utils import is_client, token_required

messaging_bp = Blueprint("messaging", __name__, url_prefix="/api/messages")

MAX_MESSAGE_LENGTH = 5000


@messaging_bp.route("", methods=["GET"])
@token_required
def list_messages(current_user):
    """GET /api/messages?box=inbox|sent"""
    try:
        box = request.args.get("box", "inbox")
        if box not in ("inbox", "sent"):
            return jsonify({"error": "box must be inbox or sent"}), 400

        column = Message.recipient_id if box == "inbox" else Message.sender_id
        messages = db.session.scalars(
            select(Message).where(column == current_user.id).order_by(Message.created_at.desc())
        ).all()
        unread = db.session.scalar(
            select(func.count(Message.id)).where(
                Message.recipient_id == current_user.id, Message.is_read.is_(False)
            )
        )
        return jsonify({"messages": [m.to_dict() for m in messages], "unread_count": unread})

    except Exception as e:
        current_app.logger.error(f"Error fetching messages: {e}")
        return jsonify({"error": "Failed to fetch messages", "details": str(e)}), 500


def _between(user_id, other_id):
    return or_(
        and_(Message.sender_id == user_id, Message.recipient_id == other_id),
        and_(Message.sender_id == other_id, Message.recipient_id == user_id),
    )


@messaging_bp.route("/thread/<int:other_user_id>", methods=["GET"])
@token_required
def get_thread(current_user, other_user_id):
    """
    Conversation with one user, oldest first.
    Messages received in this thread are marked read.
    """
    try:
        other = db.session.get(User, other_user_id)
        if not other:
            return jsonify({"error": "User not found"}), 404

        messages = db.session.scalars(
            select(Message)
            .where(_between(current_user.id, other_user_id))
            .order_by(Message.created_at.asc(), Message.id.asc())
        ).all()

        db.session.execute(
            update(Message)
            .where(
                Message.sender_id == other_user_id,
                Message.recipient_id == current_user.id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

        return jsonify({
            "user": {"id": other.id, "name": other.name, "image": other.image, "role": other.role},
            "messages": [m.to_dict() for m in messages],
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error fetching thread: {e}")
        return jsonify({"error": "Failed to fetch conversation", "details": str(e)}), 500


@messaging_bp.route("", methods=["POST"])
@token_required
def send_message(current_user):
    """
    POST /api/messages
    Input: JSON { recipient_id, content, subject? }
    The recipient gets a NEW_MESSAGE notification.
    """
    try:
        data = request.get_json(silent=True) or {}
        recipient_id = data.get("recipient_id")
        content = data.get("content")
        if not recipient_id or not isinstance(content, str) or not content.strip():
            return jsonify({"error": "recipient_id and content are required"}), 400
        if len(content) > MAX_MESSAGE_LENGTH:
            return jsonify({"error": "Message is too long"}), 400
        if recipient_id == current_user.id:
            return jsonify({"error": "You cannot message yourself"}), 400

        recipient = db.session.get(User, recipient_id)
        if not recipient:
            return jsonify({"error": "Recipient not found"}), 404

        message = Message(
            sender_id=current_user.id,
            recipient_id=recipient.id,
            subject=data.get("subject") or None,
            content=content.strip(),
        )
        db.session.add(message)
        create_notification(
            recipient.id,
            "NEW_MESSAGE",
            "💬 New message",
            f"{current_user.name or 'Someone'} sent you a message",
            link=f"/inbox?user={current_user.id}",
        )
        db.session.commit()

        return jsonify({"message": message.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error sending message: {e}")
        return jsonify({"error": "Failed to send message", "details": str(e)}), 500


@messaging_bp.route("/<int:message_id>", methods=["DELETE"])
@token_required
def delete_message(current_user, message_id):
    message = db.session.get(Message, message_id)
    if not message:
        return jsonify({"error": "Message not found"}), 404
    if message.sender_id != current_user.id:
        return jsonify({"error": "You can only delete messages you sent"}), 403

    db.session.delete(message)
    db.session.commit()
    return jsonify({"message": "Message deleted"})


@messaging_bp.route("/thread/<int:other_user_id>", methods=["DELETE"])
@token_required
def delete_thread(current_user, other_user_id):
    """Deletes the messages the caller sent in this conversation; replies stay."""
    deleted = db.session.execute(
        delete(Message)
        .where(Message.sender_id == current_user.id, Message.recipient_id == other_user_id)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()
    return jsonify({"message": "Conversation deleted", "deleted_count": deleted})


def _user_summary(user):
    return {"id": user.id, "name": user.name, "email": user.email, "image": user.image, "role": user.role}


@messaging_bp.route("/recipients", methods=["GET"])
@token_required
def list_recipients(current_user):
    """
    Who the caller may start a conversation with.

    Clients get one "Administrators" entry (the owner admin, else the oldest
    admin) plus active staff. Staff and admins get every admin and active staff.
    """
    try:
        staff = db.session.scalars(
            select(User)
            .join(Barber, Barber.user_id == User.id)
            .where(Barber.is_active.is_(True), User.id != current_user.id)
            .order_by(User.name.asc())
        ).all()

        if is_client(current_user.role):
            admin = None
            owner_email = (current_app.config.get("OWNER_EMAIL") or "").strip().lower()
            if owner_email:
                admin = db.session.scalar(select(User).where(func.lower(User.email) == owner_email))
            if not admin:
                admin = db.session.scalar(
                    select(User).where(User.role == "ADMIN").order_by(User.created_at.asc(), User.id.asc())
                )
            if not admin:
                return jsonify([])
            team = {"id": admin.id, "name": "Administrators", "email": "", "image": admin.image, "role": "ADMIN"}
            return jsonify([team] + [_user_summary(u) for u in staff])

        admins = db.session.scalars(
            select(User).where(User.role == "ADMIN", User.id != current_user.id)
        ).all()
        seen = set()
        recipients = []
        for user in sorted(list(admins) + list(staff), key=lambda u: (u.name or "").lower()):
            if user.id not in seen:
                seen.add(user.id)
                recipients.append(_user_summary(user))
        return jsonify(recipients)

    except Exception as e:
        current_app.logger.error(f"Error fetching recipients: {e}")
        return jsonify({"error": "Failed to fetch recipients", "details": str(e)}), 500
