import math
import re

_PRICE_JUNK = re.compile(r"[^0-9.\-]")
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def format_price(value):
    """
    Format a price for display: whole amounts as "$25", others as "$25.50".
    Strings are stripped of anything that is not a digit, dot or minus sign.
    """
    if value is None:
        return "$0"

    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        cleaned = _PRICE_JUNK.sub("", str(value).strip())
        try:
            numeric = float(cleaned) if cleaned else 0.0
        except ValueError:
            numeric = math.nan

    if not math.isfinite(numeric):
        raw = str(value).strip()
        return raw if raw.startswith("$") else f"${raw}"

    cents = round(numeric * 100)
    if cents % 100 != 0:
        return f"${numeric:.2f}"
    return f"${numeric:.0f}"


def resolve_public_media_url(path):
    if not path:
        return ""

    trimmed = str(path).strip()
    if not trimmed:
        return ""

    if _HTTP_URL.match(trimmed):
        return trimmed

    if trimmed.startswith("/"):
        return trimmed

    # Legacy values stored with the "public/" prefix
    idx = trimmed.find("public/uploads/")
    if idx >= 0:
        return "/" + trimmed[idx + len("public/"):]

    if trimmed.startswith("uploads/"):
        return f"/{trimmed}"

    return trimmed


def format_duration(seconds):
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    remaining = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{remaining:02d}"
