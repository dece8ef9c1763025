# Admin dashboard: shop statistics and user management
import csv
import io
import re
from datetime import datetime, timedelta

import bcrypt
from flask import Blueprint, Response, current_app, jsonify, request
from sqlalchemy import func, or_, select

from app.extensions import db
from ...models import Appointment, Barber, Post, Review, Service, User
from ...services.account_service import delete_user_account
from ...services.email_service import email_service
from ...services.notification_service import create_notification
from ...services.push_service import is_web_push_configured, send_web_push_to_users
from ...services.sms_service import is_twilio_configured, send_sms
from ...utils.auth_utils import admin_required, token_required

admin_users_bp = Blueprint("admin_users", __name__, url_prefix="/api/admin")

MANAGEABLE_ROLES = ("CLIENT", "BARBER", "STYLIST", "ADMIN")
E164_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
NOTIFY_CHANNELS = ("email", "notification", "both")


def normalize_admin_phone(value):
    """Strip spaces, dashes and parentheses; '' when nothing is left."""
    return re.sub(r"[\s\-()]", "", value or "")


def is_valid_e164(phone):
    return bool(E164_PATTERN.match(phone or ""))


def _is_owner(user):
    owner_email = (current_app.config.get("OWNER_EMAIL") or "").strip().lower()
    return bool(owner_email) and (user.email or "").lower() == owner_email


@admin_users_bp.route("/stats", methods=["GET"])
@token_required
@admin_required
def get_stats(current_user):
    """
    Dashboard counters.
    Revenue is the sum of service prices over COMPLETED appointments; monthly
    revenue counts those completed since the first of the month.
    """
    try:
        now = datetime.now()
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        def count(query):
            return db.session.scalar(query) or 0

        revenue_query = (
            select(func.sum(Service.price))
            .join(Appointment, Appointment.service_id == Service.id)
            .where(Appointment.status == "COMPLETED")
        )
        total_revenue = float(db.session.scalar(revenue_query) or 0)
        monthly_revenue = float(
            db.session.scalar(revenue_query.where(Appointment.updated_at >= start_of_month)) or 0
        )
        avg_rating = db.session.scalar(select(func.avg(Review.rating))) or 0

        recent = db.session.scalars(
            select(Appointment).order_by(Appointment.created_at.desc()).limit(5)
        ).all()
        new_clients = db.session.scalars(
            select(User)
            .where(User.role == "CLIENT", User.created_at >= now - timedelta(days=30))
            .order_by(User.created_at.desc())
            .limit(5)
        ).all()

        return jsonify({
            "total_appointments": count(select(func.count(Appointment.id))),
            "completed_appointments": count(
                select(func.count(Appointment.id)).where(Appointment.status == "COMPLETED")
            ),
            "pending_appointments": count(
                select(func.count(Appointment.id)).where(Appointment.status.in_(["PENDING", "CONFIRMED"]))
            ),
            "total_clients": count(select(func.count(User.id)).where(User.role == "CLIENT")),
            "total_barbers": count(select(func.count(Barber.id)).where(Barber.is_active.is_(True))),
            "total_reviews": count(select(func.count(Review.id))),
            "pending_posts": count(select(func.count(Post.id)).where(Post.status == "PENDING")),
            "average_rating": f"{float(avg_rating):.1f}",
            "total_revenue": f"{total_revenue:.2f}",
            "monthly_revenue": f"{monthly_revenue:.2f}",
            "recent_appointments": [a.to_dict() for a in recent],
            "new_clients": [
                {"id": u.id, "name": u.name, "email": u.email, "created_at": u.created_at.isoformat()}
                for u in new_clients
            ],
        })

    except Exception as e:
        current_app.logger.error(f"Error fetching admin stats: {e}")
        return jsonify({"error": "Failed to fetch statistics", "details": str(e)}), 500


def _user_row(user, appointment_counts, post_counts):
    data = user.to_dict()
    if not data["image"] and user.barber:
        data["image"] = user.barber.profile_image
    data["barber"] = (
        {
            "id": user.barber.id,
            "specialties": user.barber.specialties,
            "bio": user.barber.bio,
            "profile_image": user.barber.profile_image,
            "is_active": user.barber.is_active,
        }
        if user.barber
        else None
    )
    data["counts"] = {
        "appointments": appointment_counts.get(user.id, 0),
        "posts": post_counts.get(user.id, 0),
    }
    return data


def _counts_by(column):
    return dict(db.session.execute(select(column, func.count()).group_by(column)).all())


@admin_users_bp.route("/users", methods=["GET"])
@token_required
@admin_required
def list_users(current_user):
    """Every user, admins first, newest first within a role."""
    try:
        users = db.session.scalars(
            select(User).order_by(User.role.asc(), User.created_at.desc())
        ).all()
        appointment_counts = _counts_by(Appointment.client_id)
        post_counts = _counts_by(Post.author_id)
        return jsonify({"users": [_user_row(u, appointment_counts, post_counts) for u in users]})

    except Exception as e:
        current_app.logger.error(f"Error fetching users: {e}")
        return jsonify({"error": "Failed to fetch users", "details": str(e)}), 500


@admin_users_bp.route("/users", methods=["POST"])
@token_required
@admin_required
def create_user(current_user):
    """
    POST /api/admin/users
    Input: JSON { name, email, password, role?, phone? }
    """
    try:
        data = request.get_json(silent=True) or {}
        name = (data.get("name") or "").strip()
        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""
        role = data.get("role") or "CLIENT"

        if not name or not email or not password:
            return jsonify({"error": "Name, email, and password are required"}), 400
        if len(password) < 6:
            return jsonify({"error": "Password must be at least 6 characters"}), 400
        if role not in MANAGEABLE_ROLES:
            return jsonify({"error": "Invalid role"}), 400
        if db.session.scalar(select(User.id).where(User.email == email)) is not None:
            return jsonify({"error": "This email is already in use"}), 400

        phone = None
        if isinstance(data.get("phone"), str) and data["phone"].strip():
            phone = normalize_admin_phone(data["phone"].strip())
            if not is_valid_e164(phone):
                return jsonify({"error": "Invalid phone number. Use E.164 format (e.g., +17813677244)"}), 400

        user = User(
            name=name,
            email=email,
            password_hash=bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()),
            role=role,
            phone=phone,
        )
        db.session.add(user)
        db.session.commit()
        current_app.logger.info(f"[ADMIN USERS] created {user.email} role={user.role}")

        return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating user: {e}")
        return jsonify({"error": "Failed to create user", "details": str(e)}), 500


@admin_users_bp.route("/users/<int:user_id>", methods=["GET"])
@token_required
@admin_required
def get_user(current_user, user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = user.to_dict()
    data["barber"] = user.barber.to_dict(include_user=False) if user.barber else None
    data["appointments"] = [
        a.to_dict()
        for a in db.session.scalars(
            select(Appointment)
            .where(Appointment.client_id == user.id)
            .order_by(Appointment.date.desc())
            .limit(10)
        ).all()
    ]
    data["reviews"] = [
        r.to_dict()
        for r in db.session.scalars(
            select(Review).where(Review.client_id == user.id).order_by(Review.created_at.desc()).limit(10)
        ).all()
    ]
    return jsonify({"user": data})


@admin_users_bp.route("/users/<int:user_id>", methods=["PUT"])
@token_required
@admin_required
def update_user(current_user, user_id):
    """
    Other admins can only be edited by the owner account (OWNER_EMAIL) or themselves.
    """
    try:
        user = db.session.get(User, user_id)
        if not user:
            return jsonify({"error": "User not found"}), 404
        if user.role == "ADMIN" and user.id != current_user.id and not _is_owner(current_user):
            return jsonify({"error": "You cannot edit other admin users"}), 403

        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        if email and email != user.email:
            if db.session.scalar(select(User.id).where(User.email == email)) is not None:
                return jsonify({"error": "This email is already in use"}), 400
            user.email = email

        if "name" in data:
            user.name = data["name"]
        if data.get("role") in MANAGEABLE_ROLES:
            user.role = data["role"]

        if "phone" in data:
            phone = data["phone"]
            if not phone:
                user.phone = None
            elif isinstance(phone, str):
                candidate = normalize_admin_phone(phone.strip())
                if candidate and not is_valid_e164(candidate):
                    return jsonify({"error": "Invalid phone number. Use E.164 format (e.g., +17813677244)"}), 400
                user.phone = candidate or None

        password = data.get("password")
        if password and len(password) >= 6:
            user.password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())

        db.session.commit()
        return jsonify({"message": "User updated successfully", "user": user.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating user: {e}")
        return jsonify({"error": "Failed to update user", "details": str(e)}), 500


@admin_users_bp.route("/users/<int:user_id>", methods=["DELETE"])
@token_required
@admin_required
def delete_user(current_user, user_id):
    """
    Permanently removes a client or admin account and everything it owns.
    Barbers are removed from the barbers section instead.
    """
    try:
        user = db.session.get(User, user_id)
        if not user:
            return jsonify({"error": "User not found"}), 404
        if user.id == current_user.id:
            return jsonify({"error": "You cannot delete your own account"}), 400
        if user.role == "ADMIN" and not _is_owner(current_user):
            return jsonify({"error": "Admin users cannot be deleted"}), 403
        if user.barber:
            return jsonify({
                "error": "This user is a barber. Please delete them from the Barbers or Stylists section."
            }), 400

        delete_user_account(user.id)
        db.session.commit()
        return jsonify({"message": "User deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting user: {e}")
        return jsonify({"error": "Failed to delete user", "details": str(e)}), 500


@admin_users_bp.route("/users/export", methods=["GET"])
@token_required
@admin_required
def export_users(current_user):
    """CSV of all users; served as an attachment named users_<date>.csv."""
    users = db.session.scalars(select(User).order_by(User.role.asc(), User.created_at.desc())).all()
    appointment_counts = _counts_by(Appointment.client_id)
    review_counts = _counts_by(Review.client_id)
    post_counts = _counts_by(Post.author_id)

    headers = [
        "ID", "Name", "Email", "Role", "Is Barber", "Specialties",
        "Total Appointments", "Total Reviews", "Total Posts",
        "Created At", "Updated At", "Last Login",
    ]
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(headers)
    for user in users:
        writer.writerow([
            user.id,
            user.name or "Unnamed",
            user.email,
            user.role,
            "Yes" if user.barber else "No",
            (user.barber.specialties if user.barber else None) or "N/A",
            appointment_counts.get(user.id, 0),
            review_counts.get(user.id, 0),
            post_counts.get(user.id, 0),
            user.created_at.strftime("%m/%d/%Y"),
            user.updated_at.strftime("%m/%d/%Y"),
            user.last_login.strftime("%m/%d/%Y") if user.last_login else "N/A",
        ])

    filename = f"users_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        output.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@admin_users_bp.route("/users/cleanup", methods=["POST"])
@token_required
@admin_required
def cleanup_test_users(current_user):
    """
    Deletes non-admin accounts whose name or email contains "test".
    Barbers are skipped unless { include_barbers: true }.
    """
    try:
        data = request.get_json(silent=True) or {}
        include_barbers = data.get("include_barbers") is True

        candidates = db.session.scalars(
            select(User).where(
                User.role != "ADMIN",
                or_(func.lower(User.name).like("%test%"), func.lower(User.email).like("%test%")),
            )
        ).all()
        if not candidates:
            return jsonify({"message": "No test users found to delete", "deleted_count": 0})

        targets = [u for u in candidates if include_barbers or not u.barber]
        skipped = len(candidates) - len(targets)
        if not targets:
            return jsonify({
                "message": "All test users are barbers. Please delete them manually from Barbers/Stylists.",
                "deleted_count": 0,
                "skipped_count": skipped,
            })

        user_ids = [u.id for u in targets]
        for user_id in user_ids:
            delete_user_account(user_id)
        db.session.commit()
        current_app.logger.info(f"[ADMIN USERS] cleanup deleted={len(user_ids)} skipped={skipped}")

        return jsonify({
            "message": f"Deleted {len(user_ids)} test user(s)",
            "deleted_count": len(user_ids),
            "skipped_count": skipped,
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error cleaning up test users: {e}")
        return jsonify({"error": "Failed to clean up test users", "details": str(e)}), 500


def _selected_users(data):
    user_ids = data.get("user_ids")
    if not isinstance(user_ids, list) or not user_ids:
        return None, (jsonify({"error": "You must select at least one user"}), 400)
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        return None, (jsonify({"error": "Message cannot be empty"}), 400)

    users = db.session.scalars(select(User).where(User.id.in_(user_ids))).all()
    if not users:
        return None, (jsonify({"error": "No valid users found"}), 404)
    return users, None


@admin_users_bp.route("/users/notify", methods=["POST"])
@token_required
@admin_required
def notify_users(current_user):
    """
    Input: JSON { user_ids, message, subject?, notification_type? ("email" | "notification" | "both") }
    """
    data = request.get_json(silent=True) or {}
    channel = data.get("notification_type") or "email"
    if channel not in NOTIFY_CHANNELS:
        return jsonify({"error": "notification_type must be email, notification or both"}), 400

    users, error = _selected_users(data)
    if error:
        return error

    subject = data.get("subject") or "JBookMe Notification"
    message = data["message"].strip()
    emails_sent = 0
    notifications_created = 0
    errors = []

    if channel in ("email", "both"):
        for user in users:
            result = email_service.send_admin_message(user.email, user.name or "User", subject, message)
            if result["success"]:
                emails_sent += 1
            else:
                errors.append(f"Email to {user.email} failed")

    if channel in ("notification", "both"):
        for user in users:
            create_notification(user.id, "NEW_MESSAGE", data.get("subject") or "Admin Notification", message)
            notifications_created += 1
        db.session.commit()

    return jsonify({
        "message": "Notifications sent successfully",
        "stats": {
            "total_users": len(users),
            "emails_sent": emails_sent,
            "notifications_created": notifications_created,
            "errors": len(errors),
        },
        "errors": errors or None,
    })


@admin_users_bp.route("/users/push", methods=["POST"])
@token_required
@admin_required
def push_users(current_user):
    """Input: JSON { user_ids, message, title?, url? }"""
    if not is_web_push_configured():
        return jsonify({"error": "Web push is not configured", "requires_configuration": True}), 503

    data = request.get_json(silent=True) or {}
    users, error = _selected_users(data)
    if error:
        return error

    try:
        totals = send_web_push_to_users(
            [u.id for u in users],
            data.get("title") or "JBookMe",
            data["message"].strip(),
            url=data.get("url") or "/",
        )
        return jsonify({"message": "Push notifications processed", "stats": {"total_users": len(users), **totals}})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error sending admin push notifications: {e}")
        return jsonify({"error": "Failed to send push notifications", "details": str(e)}), 500


@admin_users_bp.route("/users/sms", methods=["POST"])
@token_required
@admin_required
def sms_users(current_user):
    """
    Input: JSON { user_ids, message }
    Users without a phone, or with a number that is not E.164, are reported in errors.
    """
    if not is_twilio_configured():
        return jsonify({
            "error": "Twilio is not configured",
            "requires_configuration": True,
            "instructions": "Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER.",
        }), 503

    data = request.get_json(silent=True) or {}
    users, error = _selected_users(data)
    if error:
        return error

    message = data["message"].strip()
    sms_sent = 0
    users_with_no_phone = 0
    errors = []
    for user in users:
        label = user.name or user.id
        raw = (user.phone or "").strip()
        if not raw:
            users_with_no_phone += 1
            errors.append(f"User {label} has no phone")
            continue

        to = normalize_admin_phone(raw)
        if not is_valid_e164(to):
            errors.append(f"Invalid phone for {label}: {raw} (use E.164 like +17813677244)")
            continue

        result = send_sms(to, message)
        if result["success"]:
            sms_sent += 1
        else:
            errors.append(f"SMS to {label} failed: {result.get('error') or 'Unknown error'}")

    return jsonify({
        "message": "SMS processed",
        "stats": {
            "total_users": len(users),
            "sms_sent": sms_sent,
            "users_with_no_phone": users_with_no_phone,
            "errors": len(errors),
        },
        "errors": errors or None,
    })
