# Open time slots and weekly schedule bootstrap
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import delete, select

from app.extensions import db
from ...models import Availability, Barber
from ...services.availability_service import (
    BUFFER_MINUTES,
    compute_available_slots,
    create_default_availability,
)
from ...utils.auth_utils import admin_required, token_required

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")


@availability_bp.route("", methods=["GET"])
def get_available_times():
    """
    GET /api/availability?barber_id=1&date=2026-05-04&service_duration=45
    Purpose: Bookable start times for one barber on one day.

    Behavior:
    - service_duration defaults to 30 minutes
    - Returns an empty list with a message when the barber is off that day
    """
    barber_id = request.args.get("barber_id", type=int)
    date_str = request.args.get("date")
    if not barber_id or not date_str:
        return jsonify({"error": "barber_id and date are required"}), 400

    service_duration = request.args.get("service_duration", default=30, type=int)
    if service_duration is None or service_duration <= 0:
        return jsonify({"error": "service_duration must be a positive number"}), 400

    try:
        day = datetime.strptime(date_str[:10], "%Y-%m-%d").date()
    except ValueError:
        return jsonify({"error": "date must be in YYYY-MM-DD format"}), 400

    try:
        slots, message = compute_available_slots(barber_id, day, service_duration)
        response = {
            "available_times": slots,
            "service_duration": service_duration,
            "buffer_minutes": BUFFER_MINUTES,
        }
        if message:
            response["message"] = message
        return jsonify(response)

    except Exception as e:
        current_app.logger.error(f"[AVAILABILITY] Error computing slots: {e}")
        return jsonify({"error": "Failed to fetch availability", "details": str(e)}), 500


@availability_bp.route("/initialize", methods=["POST"])
@token_required
@admin_required
def initialize_availability(current_user):
    """
    POST /api/availability/initialize
    Input: JSON { barber_id, reset_existing? }

    Creates Monday-Saturday 09:00-20:00 and an unavailable Sunday.
    """
    try:
        data = request.get_json(silent=True) or {}
        barber_id = data.get("barber_id")
        if not barber_id:
            return jsonify({"error": "barber_id is required"}), 400

        barber = db.session.get(Barber, barber_id)
        if not barber:
            return jsonify({"error": "Barber not found"}), 404

        existing = db.session.scalar(
            select(Availability.id).where(Availability.barber_id == barber.id).limit(1)
        )
        if existing is not None:
            if not data.get("reset_existing"):
                return jsonify({
                    "error": "Barber already has availability configured. Pass reset_existing to replace it."
                }), 400
            db.session.execute(delete(Availability).where(Availability.barber_id == barber.id))

        rows = create_default_availability(barber.id, "09:00", "20:00", sunday_off=True)
        db.session.commit()

        return jsonify({
            "message": "Availability initialized",
            "availability": [row.to_dict() for row in rows],
        }), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error initializing availability: {e}")
        return jsonify({"error": "Failed to initialize availability", "details": str(e)}), 500
