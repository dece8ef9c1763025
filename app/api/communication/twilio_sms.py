# Inbound SMS replies to the booking confirmation text
import re
from datetime import datetime, timedelta

from flask import Blueprint, Response, current_app, jsonify, request
from sqlalchemy import or_, select
from twilio.twiml.messaging_response import MessagingResponse

from app.extensions import db
from ...models import Appointment, User
from ...services.appointment_service import ACTIVE_STATUSES, cancel_appointment
from ...services.notification_service import create_notification
from ...services.push_service import send_web_push_to_user
from ...utils.time_utils import format_time_12h

twilio_bp = Blueprint("twilio", __name__, url_prefix="/api/twilio")

CONFIRM_WORDS = ("YES", "SI", "SÍ")
CANCEL_WORDS = ("NO",)
PROMPT = "JB's Barbershop 💈\nPlease reply YES to confirm or NO to cancel your appointment."
CONFIRMED_REPLY = "Thank you! Your appointment is confirmed 💈"
CANCELLED_REPLY = "Your appointment has been canceled.\nYou can book again anytime at jbsbookme.com"


def _twiml(message):
    reply = MessagingResponse()
    reply.message(message)
    return Response(str(reply), status=200, mimetype="text/xml")


def _find_user_by_phone(raw_phone):
    digits = re.sub(r"\D", "", raw_phone or "")
    last10 = digits[-10:] if len(digits) >= 10 else digits
    if not last10:
        return None
    return db.session.scalar(
        select(User)
        .where(
            User.phone.isnot(None),
            or_(
                User.phone.endswith(last10),
                User.phone == f"+1{last10}",
                User.phone == last10,
            ),
        )
        .limit(1)
    )


def _notify_barber(appointment, title, verb):
    barber_user_id = appointment.barber.user_id if appointment.barber else None
    if not barber_user_id:
        return
    date_short = appointment.date.strftime("%a, %b %d")
    time_display = format_time_12h(appointment.time)
    client_name = appointment.client.name if appointment.client and appointment.client.name else "Client"
    try:
        create_notification(
            barber_user_id,
            "APPOINTMENT_CONFIRMED" if verb == "Confirmed" else "APPOINTMENT_CANCELLED",
            title,
            f"{verb}: {date_short} at {time_display} ({client_name})",
            link="/dashboard/barbero",
        )
        db.session.commit()
        send_web_push_to_user(
            barber_user_id,
            title,
            f"{verb}: {date_short} at {time_display}",
            url="/dashboard/barbero",
            data={"appointment_id": appointment.id},
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[Twilio][InboundSMS] notify barber error: {e}")


@twilio_bp.route("/sms", methods=["POST"])
def inbound_sms():
    """
    Twilio webhook (form encoded From / Body).

    YES or SI confirms and NO cancels the sender's next active appointment
    between one hour ago and 48 hours ahead. Any other reply, an unknown
    number or an internal error gets the prompt again, always with a 200
    so Twilio does not retry.
    """
    secret = current_app.config.get("TWILIO_WEBHOOK_SECRET")
    if secret and request.args.get("secret") != secret:
        return jsonify({"error": "Unauthorized"}), 401

    try:
        from_raw = (request.form.get("From") or "").strip()
        body = (request.form.get("Body") or "").strip().upper()
        current_app.logger.info(f"[Twilio][InboundSMS] from={from_raw} body={body}")

        user = _find_user_by_phone(from_raw)
        if not user:
            return _twiml(PROMPT)

        now = datetime.now()
        appointment = db.session.scalar(
            select(Appointment)
            .where(
                Appointment.client_id == user.id,
                Appointment.date >= now - timedelta(hours=1),
                Appointment.date <= now + timedelta(hours=48),
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Appointment.date.asc())
            .limit(1)
        )
        if not appointment:
            return _twiml(PROMPT)

        if body in CONFIRM_WORDS:
            appointment.status = "CONFIRMED"
            appointment.auto_confirmed = True
            db.session.commit()
            current_app.logger.info(f"[Twilio][InboundSMS] confirmed appointment={appointment.id}")
            _notify_barber(appointment, "Appointment confirmed", "Confirmed")
            return _twiml(CONFIRMED_REPLY)

        if body in CANCEL_WORDS:
            cancel_appointment(appointment, "Cancelled via SMS")
            appointment.auto_confirmed = False
            db.session.commit()
            current_app.logger.info(f"[Twilio][InboundSMS] cancelled appointment={appointment.id}")
            _notify_barber(appointment, "Appointment cancelled", "Cancelled")
            return _twiml(CANCELLED_REPLY)

        return _twiml(PROMPT)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[Twilio][InboundSMS] error: {e}")
        return _twiml(PROMPT)
