"""iCalendar (.ics) and Google Calendar link generation for appointments."""

import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from .time_utils import parse_time_strict

PRODID = "-//BookMe//Barbershop App//EN"


def format_ics_date(value):
    """UTC ``YYYYMMDDTHHMMSSZ``. Naive datetimes are taken as local time."""
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_ics_text(text):
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
        .replace("\r", "")
    )


def generate_ics(
    title,
    start,
    end,
    description=None,
    location=None,
    organizer_email=None,
    attendee_email=None,
    uid=None,
):
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid or str(uuid.uuid4()) + '@bookme.app'}",
        f"DTSTAMP:{format_ics_date(datetime.now())}",
        f"DTSTART:{format_ics_date(start)}",
        f"DTEND:{format_ics_date(end)}",
        f"SUMMARY:{escape_ics_text(title)}",
    ]

    if description:
        lines.append(f"DESCRIPTION:{escape_ics_text(description)}")
    if location:
        lines.append(f"LOCATION:{escape_ics_text(location)}")
    if organizer_email:
        lines.append(f"ORGANIZER:mailto:{organizer_email}")
    if attendee_email:
        lines.append(f"ATTENDEE:mailto:{attendee_email}")

    lines += [
        "BEGIN:VALARM",
        "TRIGGER:-PT30M",
        "DESCRIPTION:Appointment reminder from BookMe",
        "ACTION:DISPLAY",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def appointment_start_end(appointment):
    """Start and end datetimes; non-positive durations fall back to 60 minutes."""
    hours, minutes = parse_time_strict(appointment.time)
    start = appointment.date.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    duration = appointment.service.duration if appointment.service else None
    if not duration or duration <= 0:
        duration = 60
    return start, start + timedelta(minutes=duration)


def generate_appointment_ics(appointment, location=None):
    start, end = appointment_start_end(appointment)
    service_name = appointment.service.name
    barber_user = appointment.barber.user
    client = appointment.client

    description = (
        f"Appointment with {barber_user.name} for {service_name}.\n\n"
        f"Client: {client.name}\n\n"
        f"Booking ID: {appointment.id}\n\n"
        "Powered by BookMe"
    )
    return generate_ics(
        title=f"{service_name} - BookMe",
        start=start,
        end=end,
        description=description,
        location=location or "BookMe",
        organizer_email=barber_user.email,
        attendee_email=client.email,
        uid=f"appointment-{appointment.id}@bookme.app",
    )


def generate_google_calendar_url(appointment, location=None):
    start, end = appointment_start_end(appointment)
    service = appointment.service
    barber_user = appointment.barber.user
    client = appointment.client

    details = "\n".join(
        [
            f"Service: {service.name}",
            f"Professional: {barber_user.name}",
            f"Duration: {service.duration} minutes",
            f"Client: {client.name}",
            "",
            "Booked via BookMe",
        ]
    )
    params = {
        "action": "TEMPLATE",
        "text": f"BookMe Appointment - {service.name}",
        "dates": f"{format_ics_date(start)}/{format_ics_date(end)}",
        "details": details,
        "location": location or "BookMe",
    }
    attendees = ",".join(e for e in (barber_user.email, client.email) if e)
    if attendees:
        params["add"] = attendees
    return "https://calendar.google.com/calendar/render?" + urlencode(params)
