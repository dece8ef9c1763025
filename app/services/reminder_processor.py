from datetime import timedelta

from sqlalchemy import select

from ..extensions import db
from ..models import Appointment
from ..utils.time_utils import format_time_12h
from .email_service import email_service
from .push_service import send_web_push_to_user

# (result key, sent flag, lead time, matching window, wording)
REMINDER_WINDOWS = (
    ("reminders_24h", "notification_24h_sent", timedelta(hours=24), timedelta(hours=1), "tomorrow"),
    ("reminders_12h", "notification_12h_sent", timedelta(hours=12), timedelta(hours=1), "in 12 hours"),
    ("reminders_2h", "notification_2h_sent", timedelta(hours=2), timedelta(minutes=30), "in 2 hours"),
    ("reminders_30m", "notification_30m_sent", timedelta(minutes=30), timedelta(minutes=15), "in 30 minutes"),
)


def _send_reminder(appointment, lead_label):
    client = appointment.client
    barber_user = appointment.barber.user
    client_name = client.name or "Client"
    barber_name = barber_user.name or "Barber"
    service_name = appointment.service.name if appointment.service else "Service"
    date_label = appointment.date.strftime("%A, %B %d, %Y")
    time_label = format_time_12h(appointment.time)
    sent = 0

    if client.email:
        email_service.send_appointment_reminder(
            client.email, client_name, barber_name, service_name, date_label, time_label, lead_label
        )
        send_web_push_to_user(
            client.id,
            "⏰ Appointment Reminder",
            f"Your appointment with {barber_name} is {lead_label} ({time_label})",
            data={"appointment_id": appointment.id},
        )
        sent += 1

    if barber_user.email:
        email_service.send_appointment_reminder(
            barber_user.email, barber_name, client_name, service_name, date_label, time_label, lead_label
        )
        send_web_push_to_user(
            barber_user.id,
            "⏰ Appointment Reminder",
            f"Appointment with {client_name} is {lead_label} ({time_label})",
            data={"appointment_id": appointment.id},
        )
        sent += 1

    return sent


def process_appointment_reminders(now):
    """
    Send the 24h / 12h / 2h / 30 min reminders that are due, then thank-you
    emails for today's completed appointments. Every reminder is flagged on
    the appointment so it goes out once.
    """
    details = {}
    sent_count = 0

    for key, flag, lead, window, lead_label in REMINDER_WINDOWS:
        start = now + lead
        flag_column = getattr(Appointment, flag)
        due = db.session.scalars(
            select(Appointment).where(
                Appointment.date >= start,
                Appointment.date <= start + window,
                Appointment.status.in_(["PENDING", "CONFIRMED"]),
                flag_column.is_(False),
            )
        ).all()

        for appointment in due:
            sent_count += _send_reminder(appointment, lead_label)
            setattr(appointment, flag, True)
            db.session.commit()
        details[key] = len(due)

    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    completed = db.session.scalars(
        select(Appointment).where(
            Appointment.date >= start_of_day,
            Appointment.date <= now,
            Appointment.status == "COMPLETED",
            Appointment.thank_you_sent.is_(False),
        )
    ).all()

    for appointment in completed:
        client = appointment.client
        if not client.email:
            continue
        email_service.send_thank_you(
            client.email,
            client.name or "Client",
            appointment.barber.user.name,
            appointment.service.name if appointment.service else "Service",
        )
        appointment.thank_you_sent = True
        db.session.commit()
        sent_count += 1
    details["thank_you"] = len(completed)

    return {"sent_count": sent_count, "details": details}
