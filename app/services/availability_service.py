from datetime import datetime, timedelta

from sqlalchemy import select

from ..extensions import db
from ..models import DAYS_OF_WEEK, Appointment, Availability, DayOff
from ..utils.time_utils import format_time_12h, format_time_hhmm, parse_time_to_hours_minutes

BUFFER_MINUTES = 5
SLOT_INTERVAL = 15


def day_of_week_for(day):
    """MONDAY..SUNDAY for a date or datetime."""
    return DAYS_OF_WEEK[day.weekday()]


def create_default_availability(barber_id, start_time="09:00", end_time="18:00", sunday_off=True):
    """One row per weekday; Sunday is marked unavailable. Caller commits."""
    rows = []
    for day in DAYS_OF_WEEK:
        row = Availability(
            barber_id=barber_id,
            day_of_week=day,
            start_time=start_time,
            end_time=end_time,
            is_available=not (sunday_off and day == "SUNDAY"),
        )
        db.session.add(row)
        rows.append(row)
    return rows


def _minutes(value):
    parsed = parse_time_to_hours_minutes(value)
    if parsed is None:
        return None
    return parsed[0] * 60 + parsed[1]


def compute_available_slots(barber_id, day, service_duration):
    """
    Free start times for a service of ``service_duration`` minutes.

    Returns ``(slots, message)``; ``message`` explains an empty day.
    Slots step every 15 minutes from the window start. A slot is kept when
    the service plus the 5 minute buffer ends by the window end and does
    not touch any active booking (each booking blocks its own service
    duration plus the buffer; touching edges count as overlap).
    """
    availability = db.session.scalar(
        select(Availability).where(
            Availability.barber_id == barber_id,
            Availability.day_of_week == day_of_week_for(day),
            Availability.is_available.is_(True),
        )
    )
    if availability is None:
        return [], "This barber does not work on this day of the week"

    day_off = db.session.scalar(
        select(DayOff).where(DayOff.barber_id == barber_id, DayOff.date == day)
    )
    if day_off is not None:
        return [], "Day off"

    start_of_day = datetime(day.year, day.month, day.day)
    end_of_day = start_of_day + timedelta(days=1)
    booked = db.session.scalars(
        select(Appointment).where(
            Appointment.barber_id == barber_id,
            Appointment.date >= start_of_day,
            Appointment.date < end_of_day,
            Appointment.status.in_(["PENDING", "CONFIRMED"]),
        )
    ).all()

    work_start = _minutes(availability.start_time)
    work_end = _minutes(availability.end_time)
    if work_start is None or work_end is None:
        return [], "Invalid working hours"

    blocked = []
    for appointment in booked:
        start = appointment.date.hour * 60 + appointment.date.minute
        duration = appointment.service.duration if appointment.service else 30
        blocked.append((start, start + (duration or 30) + BUFFER_MINUTES))

    slots = []
    slot = work_start
    while slot < work_end:
        service_end = slot + service_duration + BUFFER_MINUTES
        fits = service_end <= work_end
        overlaps = any(slot <= b_end and service_end >= b_start for b_start, b_end in blocked)
        if fits and not overlaps:
            slots.append(format_time_12h(format_time_hhmm(slot // 60, slot % 60)))
        slot += SLOT_INTERVAL

    return slots, None
