from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from ...models import DAYS_OF_WEEK, Availability, DayOff
from ...services.appointment_service import get_barber_for_user
from ...services.availability_service import create_default_availability
from ...utils.auth_utils import staff_required, token_required
from ...utils.time_utils import normalize_time_to_hhmm

barber_schedule_bp = Blueprint("barber_schedule", __name__, url_prefix="/api/barber")


def _ordered(rows):
    return sorted(rows, key=lambda row: DAYS_OF_WEEK.index(row.day_of_week))


@barber_schedule_bp.route("/availability", methods=["GET"])
@token_required
@staff_required
def get_my_availability(current_user):
    """
    GET /api/barber/availability
    Purpose: Weekly schedule of the signed-in barber.

    A barber without any rows gets a default 09:00-18:00 week with Sunday off.
    """
    try:
        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        rows = db.session.scalars(
            select(Availability).where(Availability.barber_id == barber.id)
        ).all()
        if not rows:
            rows = create_default_availability(barber.id)
            db.session.commit()

        return jsonify({"availability": [row.to_dict() for row in _ordered(rows)]})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error fetching availability: {e}")
        return jsonify({"error": "Failed to fetch availability", "details": str(e)}), 500


@barber_schedule_bp.route("/availability", methods=["POST"])
@token_required
@staff_required
def update_my_availability(current_user):
    """
    POST /api/barber/availability
    Input: JSON { availability: [{ day_of_week, start_time, end_time, is_available }] }
    Each entry is upserted on (barber, day_of_week).
    """
    try:
        data = request.get_json(silent=True) or {}
        entries = data.get("availability")
        if not isinstance(entries, list):
            return jsonify({"error": "Invalid availability data"}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        for entry in entries:
            day = (entry.get("day_of_week") or "").upper()
            start_time = normalize_time_to_hhmm(entry.get("start_time"))
            end_time = normalize_time_to_hhmm(entry.get("end_time"))
            if day not in DAYS_OF_WEEK:
                return jsonify({"error": f"Invalid day_of_week: {entry.get('day_of_week')}"}), 400
            if not start_time or not end_time:
                return jsonify({"error": f"Invalid time range for {day}"}), 400
            if start_time >= end_time:
                return jsonify({"error": f"start_time must be before end_time for {day}"}), 400

            row = db.session.scalar(
                select(Availability).where(
                    Availability.barber_id == barber.id, Availability.day_of_week == day
                )
            )
            if row is None:
                row = Availability(barber_id=barber.id, day_of_week=day)
                db.session.add(row)
            row.start_time = start_time
            row.end_time = end_time
            row.is_available = bool(entry.get("is_available", True))

        db.session.commit()

        rows = db.session.scalars(
            select(Availability).where(Availability.barber_id == barber.id)
        ).all()
        return jsonify({
            "message": "Availability updated successfully",
            "availability": [row.to_dict() for row in _ordered(rows)],
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating availability: {e}")
        return jsonify({"error": "Failed to update availability", "details": str(e)}), 500


@barber_schedule_bp.route("/days-off", methods=["GET"])
@token_required
@staff_required
def get_days_off(current_user):
    """Upcoming days off, soonest first."""
    barber = get_barber_for_user(current_user)
    if not barber:
        return jsonify({"error": "Barber profile not found"}), 404

    days_off = db.session.scalars(
        select(DayOff)
        .where(DayOff.barber_id == barber.id, DayOff.date >= date.today())
        .order_by(DayOff.date.asc())
    ).all()
    return jsonify([d.to_dict() for d in days_off])


@barber_schedule_bp.route("/days-off", methods=["POST"])
@token_required
@staff_required
def add_day_off(current_user):
    try:
        data = request.get_json(silent=True) or {}
        date_str = data.get("date")
        if not date_str:
            return jsonify({"error": "Date is required"}), 400

        try:
            day = datetime.strptime(str(date_str)[:10], "%Y-%m-%d").date()
        except ValueError:
            return jsonify({"error": "date must be in YYYY-MM-DD format"}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        existing = db.session.scalar(
            select(DayOff).where(DayOff.barber_id == barber.id, DayOff.date == day)
        )
        if existing:
            return jsonify({"error": "A day off is already registered for this date"}), 409

        day_off = DayOff(barber_id=barber.id, date=day, reason=data.get("reason") or None)
        db.session.add(day_off)
        db.session.commit()

        return jsonify({"message": "Day off added successfully", "day_off": day_off.to_dict()}), 201

    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "A day off is already registered for this date"}), 409

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating day off: {e}")
        return jsonify({"error": "Failed to add day off", "details": str(e)}), 500


@barber_schedule_bp.route("/days-off", methods=["DELETE"])
@token_required
@staff_required
def delete_day_off(current_user):
    """DELETE /api/barber/days-off?id=<day_off_id>"""
    try:
        day_off_id = request.args.get("id", type=int)
        if not day_off_id:
            return jsonify({"error": "Day off id is required"}), 400

        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify({"error": "Barber profile not found"}), 404

        day_off = db.session.get(DayOff, day_off_id)
        if not day_off:
            return jsonify({"error": "Day off not found"}), 404

        if day_off.barber_id != barber.id:
            return jsonify({"error": "You can only delete your own days off"}), 403

        db.session.delete(day_off)
        db.session.commit()
        return jsonify({"message": "Day off deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting day off: {e}")
        return jsonify({"error": "Failed to delete day off", "details": str(e)}), 500
