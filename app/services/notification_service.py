from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Notification, User
from ..utils.time_utils import format_time_12h
from .email_service import email_service


def create_notification(user_id, type, title, message, link=None, post_id=None, comment_id=None):
    """Adds an in-app notification to the session; the caller commits."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link=link,
        post_id=post_id,
        comment_id=comment_id,
    )
    db.session.add(notification)
    return notification


def get_admin_ids():
    return db.session.scalars(select(User.id).where(User.role == "ADMIN")).all()


def notify_admins(type, title, message, link=None, post_id=None):
    admin_ids = get_admin_ids()
    try:
        for admin_id in admin_ids:
            create_notification(admin_id, type, title, message, link, post_id)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to notify admins: {e}")
        return []
    return admin_ids


def _appointment_labels(appointment):
    return appointment.date.strftime("%a %b %d %Y"), format_time_12h(appointment.time)


def send_appointment_created_notifications(appointment):
    """
    Email the client and the barber about a new booking.

    Returns:
        Dict with 'client_email' and 'barber_email' booleans
    """
    results = {"client_email": False, "barber_email": False}
    client = appointment.client
    barber_user = appointment.barber.user
    service_name = appointment.service.name
    date_label, time_label = _appointment_labels(appointment)

    if client and client.email:
        results["client_email"] = email_service.send_appointment_confirmation(
            client.email,
            client.name,
            barber_user.name,
            service_name,
            date_label,
            time_label,
            appointment.id,
        )["success"]

    if barber_user and barber_user.email:
        results["barber_email"] = email_service.send_new_booking_to_barber(
            barber_user.email,
            barber_user.name,
            client.name,
            service_name,
            date_label,
            time_label,
            appointment.id,
        )["success"]

    return results


def send_appointment_cancelled_notifications(appointment):
    results = {"client_email": False, "barber_email": False}
    client = appointment.client
    barber_user = appointment.barber.user
    service_name = appointment.service.name
    date_label, time_label = _appointment_labels(appointment)

    if client and client.email:
        results["client_email"] = email_service.send_appointment_cancellation(
            client.email,
            client.name,
            barber_user.name,
            service_name,
            date_label,
            time_label,
            appointment.cancellation_reason,
        )["success"]

    if barber_user and barber_user.email:
        results["barber_email"] = email_service.send_appointment_cancellation(
            barber_user.email,
            barber_user.name,
            client.name,
            service_name,
            date_label,
            time_label,
            appointment.cancellation_reason,
        )["success"]

    return results
