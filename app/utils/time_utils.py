import re
from datetime import datetime

_TIME_12H = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$", re.IGNORECASE)
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_24H_SECONDS = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$")


def parse_time_to_hours_minutes(value):
    """
    Parse "9:30 AM", "11 PM", "14:30" or "09:05" into ``(hours, minutes)``.
    Returns None for anything else.
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()

    match = _TIME_12H.match(raw)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        period = match.group(3).upper()
        if hours < 1 or hours > 12 or minutes > 59:
            return None
        if period == "AM":
            hours = 0 if hours == 12 else hours
        elif hours != 12:
            hours += 12
        return hours, minutes

    match = _TIME_24H.match(raw)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return hours, minutes

    return None


def format_time_hhmm(hours, minutes):
    return f"{hours:02d}:{minutes:02d}"


def normalize_time_to_hhmm(value):
    parsed = parse_time_to_hours_minutes(value)
    if parsed is None:
        return None
    return format_time_hhmm(*parsed)


def format_time_12h(value):
    """Render a time as "h:MM AM"; unparseable input comes back trimmed."""
    parsed = parse_time_to_hours_minutes(value)
    if parsed is None:
        return (value or "").strip()
    hours, minutes = parsed
    period = "PM" if hours >= 12 else "AM"
    display = hours % 12 or 12
    return f"{display}:{minutes:02d} {period}"


def build_appointment_datetime(date_str, time_str):
    """Combine "YYYY-MM-DD" and a time string into a naive datetime, or None."""
    if not date_str:
        return None
    parsed = parse_time_to_hours_minutes(time_str)
    if parsed is None:
        return None
    try:
        day = datetime.strptime(str(date_str)[:10], "%Y-%m-%d")
    except ValueError:
        return None
    return day.replace(hour=parsed[0], minute=parsed[1], second=0, microsecond=0)


def parse_time_strict(value):
    """
    Accepts "14:30", "14:30:00" and "2:30 PM". Raises ValueError otherwise.
    """
    raw = (value or "").strip()
    match = _TIME_24H_SECONDS.match(raw)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours <= 23 and minutes <= 59:
            return hours, minutes
    parsed = parse_time_to_hours_minutes(raw)
    if parsed is None:
        raise ValueError(f"Invalid time format: {value}")
    return parsed


def parse_iso_datetime(value):
    """Parse an ISO-8601 date or datetime string; trailing "Z" is accepted."""
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1]
    parsed = datetime.fromisoformat(raw)
    # Stored datetimes are naive
    return parsed.replace(tzinfo=None)
