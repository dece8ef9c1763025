# Public job application form for barbers and stylists
import re

from flask import Blueprint, current_app, jsonify, request

from ...services.email_service import email_service
from ...utils.format_utils import EMAIL_PATTERN

employeesapp_bp = Blueprint("employeesapp_bp", __name__, url_prefix="/api/job-application")

APPLICATION_ROLES = ("barber", "stylist")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize(value, max_len):
    """Control characters become spaces; non-strings become ''."""
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub(" ", value).strip()[:max_len]


@employeesapp_bp.route("", methods=["POST"])
def submit_application():
    """
    POST /api/job-application
    Input: JSON { full_name, email, phone, role (barber | stylist),
                  years_experience?, instagram?, portfolio_url?, message? }

    The hidden "company" field is a honeypot: when filled the request is
    accepted and silently dropped.
    """
    data = request.get_json(silent=True) or {}

    if sanitize(data.get("company"), 120):
        return jsonify({"ok": True})

    full_name = sanitize(data.get("full_name"), 120)
    email = sanitize(data.get("email"), 254)
    phone = sanitize(data.get("phone"), 64)
    role = sanitize(data.get("role"), 32).lower()

    if len(full_name) < 2:
        return jsonify({"error": "Invalid name."}), 400
    if len(email) < 5 or not EMAIL_PATTERN.match(email):
        return jsonify({"error": "Invalid email."}), 400
    if len(phone) < 7:
        return jsonify({"error": "Invalid phone number."}), 400
    if role not in APPLICATION_ROLES:
        return jsonify({"error": "Please select a valid role."}), 400

    to_email = current_app.config.get("OWNER_EMAIL")
    if not to_email:
        return jsonify({"error": "Destination email is not configured. Set OWNER_EMAIL."}), 500

    result = email_service.send_job_application(
        to_email,
        {
            "name": full_name,
            "email": email,
            "phone": phone,
            "role": role,
            "experience": sanitize(data.get("years_experience"), 16),
            "instagram": sanitize(data.get("instagram"), 120),
            "portfolio_url": sanitize(data.get("portfolio_url"), 512),
            "message": sanitize(data.get("message"), 2000),
        },
    )
    if not result["success"]:
        current_app.logger.error(f"Error sending job application email: {result.get('error')}")
        return jsonify({"error": "Failed to send application. Please try again later."}), 502

    return jsonify({"ok": True})
