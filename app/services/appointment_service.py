from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import select, update

from ..extensions import db
from ..models import Appointment, Barber
from ..utils.time_utils import format_time_12h
from .notification_service import create_notification
from .push_service import send_web_push_to_user
from .sms_service import is_twilio_configured, is_twilio_sms_enabled, send_sms

ACTIVE_STATUSES = ("PENDING", "CONFIRMED")
CANCELLATION_NOTICE = timedelta(hours=24)


def get_barber_for_user(user):
    return db.session.scalar(select(Barber).where(Barber.user_id == user.id))


def has_conflict(barber_id, start, exclude_id=None):
    """True when the barber already holds an active booking at exactly ``start``."""
    query = select(Appointment.id).where(
        Appointment.barber_id == barber_id,
        Appointment.date == start,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)
    return db.session.scalar(query.limit(1)) is not None


def within_cancellation_window(appointment, now=None):
    """True when the appointment starts in less than 24 hours."""
    now = now or datetime.now()
    return appointment.date - now < CANCELLATION_NOTICE


def cancel_appointment(appointment, reason=None):
    appointment.status = "CANCELLED"
    appointment.cancelled_at = datetime.now()
    appointment.cancellation_reason = reason or "Cancelled by user"


def initial_status():
    """Bookings wait for the client's SMS reply when SMS confirmation is on."""
    return "PENDING" if is_twilio_sms_enabled() else "CONFIRMED"


def notify_barber_of_booking(appointment):
    barber_user_id = appointment.barber.user_id
    date_short = appointment.date.strftime("%a, %b %d")
    time_display = format_time_12h(appointment.time)
    confirmed = appointment.status == "CONFIRMED"
    title = "Appointment confirmed" if confirmed else "Appointment pending confirmation"
    service_name = appointment.service.name if appointment.service else "Service"
    body = f"{'Confirmed' if confirmed else 'Pending'}: {date_short} at {time_display} ({service_name})"

    try:
        create_notification(
            barber_user_id, "APPOINTMENT_REMINDER", title, body, link="/dashboard/barbero"
        )
        db.session.commit()
        send_web_push_to_user(
            barber_user_id,
            title,
            body,
            url="/dashboard/barbero",
            data={"appointment_id": appointment.id},
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[appointments] error notifying barber: {e}")


def request_sms_confirmation(appointment):
    """
    Ask the client to reply YES/NO by SMS. The ``sms_confirmation_sent``
    flag is claimed with a conditional update so the message goes out once.
    """
    client_phone = appointment.client.phone if appointment.client else None
    if not client_phone or not is_twilio_sms_enabled() or not is_twilio_configured():
        return None

    try:
        claimed = db.session.execute(
            update(Appointment)
            .where(Appointment.id == appointment.id, Appointment.sms_confirmation_sent.is_(False))
            .values(sms_confirmation_sent=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
        if not claimed:
            return None

        date_long = appointment.date.strftime("%A, %B %d, %Y")
        message = (
            "JB's Barbershop 💈\n"
            f"Please confirm your appointment for {date_long} at {format_time_12h(appointment.time)}.\n"
            "Reply YES to confirm or NO to cancel."
        )
        result = send_sms(client_phone, message)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[SMS][confirm] error for appointment {appointment.id}: {e}")
        return None

    current_app.logger.info(
        f"[SMS][confirm] appointment={appointment.id} to={client_phone} success={result['success']}"
    )
    return result
