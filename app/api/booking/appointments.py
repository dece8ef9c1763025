# Book, list, reschedule and cancel appointments
from datetime import datetime, timedelta

from flask import Blueprint, Response, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import APPOINTMENT_STATUSES, Appointment, Barber, Service
from ...services.appointment_service import (
    ACTIVE_STATUSES,
    cancel_appointment,
    get_barber_for_user,
    has_conflict,
    initial_status,
    notify_barber_of_booking,
    request_sms_confirmation,
    within_cancellation_window,
)
from ...services.cleanup_service import run_appointment_cleanup
from ...services.invoice_service import create_invoice_for_completed_appointment
from ...services.notification_service import (
    send_appointment_cancelled_notifications,
    send_appointment_created_notifications,
)
from ...utils.auth_utils import get_user_from_request, is_admin, is_barber_or_admin, is_client, token_required
from ...utils.calendar_utils import generate_appointment_ics, generate_google_calendar_url
from ...utils.cron_utils import is_cron_authorized
from ...utils.time_utils import build_appointment_datetime, normalize_time_to_hhmm

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")

CANCELLATION_WINDOW_ERROR = "Appointments can only be cancelled at least 24 hours in advance"


def _is_participant(appointment, user):
    if is_admin(user.role):
        return True
    if appointment.client_id == user.id:
        return True
    return appointment.barber.user_id == user.id


@appointments_bp.route("", methods=["GET"])
@token_required
def list_appointments(current_user):
    """
    GET /api/appointments
    Purpose: List the caller's appointments.
    Query: status ("upcoming" or an exact status), barber_id, limit

    Behavior:
    - Clients see their own bookings
    - Barbers (and admins with a barber profile) see their chair's bookings
    - Admins without a barber profile see everything
    - Newest first
    """
    try:
        query = select(Appointment)

        if is_client(current_user.role):
            query = query.where(Appointment.client_id == current_user.id)
        else:
            barber = get_barber_for_user(current_user)
            if barber is not None:
                query = query.where(Appointment.barber_id == barber.id)
            elif not is_admin(current_user.role):
                return jsonify([])

        status = request.args.get("status")
        if status == "upcoming":
            query = query.where(
                Appointment.status.in_(ACTIVE_STATUSES), Appointment.date >= datetime.now()
            )
        elif status:
            query = query.where(Appointment.status == status.upper())

        barber_id = request.args.get("barber_id", type=int)
        if barber_id:
            query = query.where(Appointment.barber_id == barber_id)

        query = query.order_by(Appointment.date.desc())
        limit = request.args.get("limit", type=int)
        if limit:
            query = query.limit(limit)

        appointments = db.session.scalars(query).all()
        return jsonify([a.to_dict() for a in appointments])

    except Exception as e:
        current_app.logger.error(f"Error fetching appointments: {e}")
        return jsonify({"error": "Failed to fetch appointments", "details": str(e)}), 500


@appointments_bp.route("", methods=["POST"])
@token_required
def create_appointment(current_user):
    """
    POST /api/appointments
    Purpose: Book an appointment for the authenticated client.
    Input: JSON { barber_id, service_id, date (YYYY-MM-DD), time, notes?, payment_method? }

    Behavior:
    - 409 when the barber already has an active booking at that time
    - Status is PENDING while awaiting the SMS reply, CONFIRMED otherwise
    - Notifies the barber (in-app + push), asks the client to confirm by SMS
      when enabled, then emails both parties
    """
    try:
        data = request.get_json(silent=True) or {}
        barber_id = data.get("barber_id")
        service_id = data.get("service_id")
        date_str = data.get("date")
        time_str = data.get("time")

        if not barber_id or not service_id or not date_str or not time_str:
            return jsonify({"error": "Missing required fields (barber_id, service_id, date, time)"}), 400

        normalized_time = normalize_time_to_hhmm(time_str)
        start = build_appointment_datetime(date_str, time_str)
        if normalized_time is None or start is None:
            return jsonify({"error": "Invalid date or time format"}), 400

        barber = db.session.get(Barber, barber_id)
        if not barber or not barber.is_active:
            return jsonify({"error": "Barber not found"}), 404

        service = db.session.get(Service, service_id)
        if not service or not service.is_active:
            return jsonify({"error": "Service not found"}), 404

        if has_conflict(barber.id, start):
            return jsonify({"error": "This time slot is already booked"}), 409

        appointment = Appointment(
            client_id=current_user.id,
            barber_id=barber.id,
            service_id=service.id,
            date=start,
            time=normalized_time,
            status=initial_status(),
            notes=data.get("notes"),
            payment_method=data.get("payment_method"),
            payment_reference=data.get("payment_reference"),
        )
        db.session.add(appointment)
        db.session.commit()

        # The booking is already saved; notification failures are only logged
        for notify in (notify_barber_of_booking, request_sms_confirmation, send_appointment_created_notifications):
            try:
                notify(appointment)
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(
                    f"Error in {notify.__name__} for appointment {appointment.id}: {e}"
                )

        return jsonify({"appointment": appointment.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating appointment: {e}")
        return jsonify({"error": "Failed to create appointment", "details": str(e)}), 500


@appointments_bp.route("/user", methods=["GET"])
@token_required
def get_user_appointments(current_user):
    """Upcoming appointments plus those from the last 7 days, at most 5."""
    week_ago = datetime.now() - timedelta(days=7)
    appointments = db.session.scalars(
        select(Appointment)
        .where(Appointment.client_id == current_user.id, Appointment.date >= week_ago)
        .order_by(Appointment.date.asc())
        .limit(5)
    ).all()
    return jsonify([a.to_dict() for a in appointments])


@appointments_bp.route("/<int:appointment_id>", methods=["GET"])
@token_required
def get_appointment(current_user, appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({"error": "Appointment not found"}), 404

    if not _is_participant(appointment, current_user):
        return jsonify({"error": "Unauthorized"}), 401

    data = appointment.to_dict()
    try:
        data["google_calendar_url"] = generate_google_calendar_url(appointment)
    except ValueError:
        data["google_calendar_url"] = None
    return jsonify(data)


@appointments_bp.route("/<int:appointment_id>", methods=["PATCH", "PUT"])
@token_required
def update_appointment(current_user, appointment_id):
    """
    PATCH /api/appointments/<id>
    Input: JSON with any of status, notes, payment_method, payment_reference,
    payment_status, cancellation_reason

    Behavior:
    - Clients may only cancel their own booking or edit its notes
    - Non-admin cancellations need 24 hours notice
    - Marking COMPLETED issues the client-service invoice
    """
    try:
        appointment = db.session.get(Appointment, appointment_id)
        if not appointment:
            return jsonify({"error": "Appointment not found"}), 404

        if not _is_participant(appointment, current_user):
            return jsonify({"error": "Forbidden"}), 403

        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if status is not None:
            status = str(status).upper()
            if status not in APPOINTMENT_STATUSES:
                return jsonify({"error": "Invalid status"}), 400

        is_owner_client = (
            appointment.client_id == current_user.id
            and not is_barber_or_admin(current_user.role)
        )
        if is_owner_client and status not in (None, "CANCELLED"):
            return jsonify({"error": "Clients can only cancel their appointments"}), 403

        was_cancelled = False
        if status == "CANCELLED" and appointment.status != "CANCELLED":
            if not is_admin(current_user.role) and within_cancellation_window(appointment):
                return jsonify({"error": CANCELLATION_WINDOW_ERROR}), 400
            cancel_appointment(appointment, data.get("cancellation_reason"))
            was_cancelled = True
        elif status:
            appointment.status = status

        for field in ("notes", "payment_method", "payment_reference", "payment_status"):
            if field in data:
                setattr(appointment, field, data[field])

        if appointment.status == "COMPLETED":
            try:
                create_invoice_for_completed_appointment(appointment)
            except Exception as e:
                current_app.logger.error(
                    f"Error creating invoice for completed appointment {appointment.id}: {e}"
                )

        db.session.commit()

        if was_cancelled:
            send_appointment_cancelled_notifications(appointment)

        return jsonify({"appointment": appointment.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating appointment {appointment_id}: {e}")
        return jsonify({"error": "Failed to update appointment", "details": str(e)}), 500


@appointments_bp.route("/<int:appointment_id>", methods=["DELETE"])
@token_required
def delete_appointment(current_user, appointment_id):
    """
    DELETE /api/appointments/<id>
    Cancels the appointment. ``?permanent=true`` (admins only) removes the row.
    """
    try:
        appointment = db.session.get(Appointment, appointment_id)
        if not appointment:
            return jsonify({"error": "Appointment not found"}), 404

        permanent = request.args.get("permanent") == "true"
        if permanent:
            if not is_admin(current_user.role):
                return jsonify({"error": "Only admins can permanently delete appointments"}), 403
            if appointment.review is not None:
                appointment.review.appointment_id = None
            db.session.delete(appointment)
            db.session.commit()
            return jsonify({"message": "Appointment deleted permanently"})

        if not _is_participant(appointment, current_user):
            return jsonify({"error": "Forbidden"}), 403

        if not is_admin(current_user.role) and within_cancellation_window(appointment):
            return jsonify({"error": CANCELLATION_WINDOW_ERROR}), 400

        cancel_appointment(appointment)
        db.session.commit()
        send_appointment_cancelled_notifications(appointment)

        return jsonify({"message": "Appointment cancelled", "appointment": appointment.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting appointment {appointment_id}: {e}")
        return jsonify({"error": "Failed to delete appointment", "details": str(e)}), 500


@appointments_bp.route("/<int:appointment_id>/no-show", methods=["POST"])
@token_required
def mark_no_show(current_user, appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({"error": "Appointment not found"}), 404

    if not (is_admin(current_user.role) or appointment.barber.user_id == current_user.id):
        return jsonify({"error": "Only the assigned barber or an admin can mark a no-show"}), 403

    appointment.status = "NO_SHOW"
    db.session.commit()
    return jsonify({"message": "Appointment marked as no-show", "appointment": appointment.to_dict()})


@appointments_bp.route("/<int:appointment_id>/reschedule", methods=["POST"])
@token_required
def reschedule_appointment(current_user, appointment_id):
    """
    POST /api/appointments/<id>/reschedule
    Input: JSON { date, time }

    Behavior:
    - The original booking is cancelled ("Rescheduled by user")
    - A CONFIRMED copy is created at the new time and the barber notified
    """
    try:
        data = request.get_json(silent=True) or {}
        date_str = data.get("date")
        time_str = data.get("time")
        if not date_str or not time_str:
            return jsonify({"error": "Date and time are required"}), 400

        original = db.session.get(Appointment, appointment_id)
        if not original:
            return jsonify({"error": "Appointment not found"}), 404

        if not _is_participant(original, current_user):
            return jsonify({"error": "Forbidden"}), 403

        normalized_time = normalize_time_to_hhmm(time_str)
        start = build_appointment_datetime(date_str, time_str)
        if normalized_time is None or start is None:
            return jsonify({"error": "Invalid date or time format"}), 400

        if has_conflict(original.barber_id, start, exclude_id=original.id):
            return jsonify({"error": "This time slot is already booked"}), 409

        cancel_appointment(original, "Rescheduled by user")
        rescheduled = Appointment(
            client_id=original.client_id,
            barber_id=original.barber_id,
            service_id=original.service_id,
            date=start,
            time=normalized_time,
            status="CONFIRMED",
            notes=original.notes,
            payment_method=original.payment_method,
            payment_reference=original.payment_reference,
        )
        db.session.add(rescheduled)
        db.session.commit()

        notify_barber_of_booking(rescheduled)
        send_appointment_created_notifications(rescheduled)

        return jsonify({
            "message": "Appointment rescheduled",
            "appointment": rescheduled.to_dict(),
            "original_appointment_id": original.id,
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error rescheduling appointment {appointment_id}: {e}")
        return jsonify({"error": "Failed to reschedule appointment", "details": str(e)}), 500


@appointments_bp.route("/<int:appointment_id>/calendar", methods=["GET"])
@token_required
def download_calendar(current_user, appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({"error": "Appointment not found"}), 404

    if not _is_participant(appointment, current_user):
        return jsonify({"error": "Forbidden"}), 403

    try:
        ics = generate_appointment_ics(appointment)
    except ValueError as e:
        current_app.logger.error(f"Error generating calendar file: {e}")
        return jsonify({"error": "Failed to generate calendar file"}), 500

    return Response(
        ics,
        mimetype="text/calendar",
        headers={
            "Content-Disposition": f'attachment; filename="bookme-appointment-{appointment.id}.ics"'
        },
    )


@appointments_bp.route("/cleanup", methods=["GET", "POST"])
def cleanup_appointments():
    """
    GET  /api/appointments/cleanup  -> dry run (deletes when called by cron)
    POST /api/appointments/cleanup  -> delete (admin or cron)
    """
    cron = is_cron_authorized()
    if not cron:
        user, error = get_user_from_request()
        if error:
            return jsonify({"error": "Unauthorized"}), 401
        if not is_admin(user.role):
            return jsonify({"error": "Forbidden"}), 403

    dry_run = request.method == "GET" and not cron
    try:
        result = run_appointment_cleanup(datetime.now(), dry_run=dry_run)
        return jsonify({"success": True, **result})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error cleaning up appointments: {e}")
        return jsonify({"error": "Failed to clean up appointments", "details": str(e)}), 500
