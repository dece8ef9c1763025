import os
import re
from typing import Dict

from flask import current_app
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

_PLACEHOLDER_SID = "placeholder-twilio-account-sid"


def _get_client():
    account_sid = os.getenv("TWILIO_ACCOUNT_SID")
    auth_token = os.getenv("TWILIO_AUTH_TOKEN")
    if not account_sid or not auth_token or account_sid == _PLACEHOLDER_SID:
        return None
    return Client(account_sid, auth_token)


def is_twilio_configured() -> bool:
    account_sid = os.getenv("TWILIO_ACCOUNT_SID")
    return bool(account_sid and os.getenv("TWILIO_AUTH_TOKEN") and account_sid != _PLACEHOLDER_SID)


def is_twilio_sms_enabled() -> bool:
    return os.getenv("TWILIO_SMS_ENABLED", "").lower() in ("true", "1")


def normalize_phone_number(phone: str) -> str:
    """
    "+..." numbers are kept; US numbers written with 10 or 11 digits
    become E.164. Anything else comes back trimmed.
    """
    trimmed = str(phone or "").strip()
    if not trimmed or trimmed.startswith("+"):
        return trimmed

    digits = re.sub(r"\D", "", trimmed)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return trimmed


def send_sms(to: str, message: str) -> Dict:
    if not is_twilio_sms_enabled():
        current_app.logger.warning("SMS disabled via TWILIO_SMS_ENABLED")
        return {"success": False, "error": "SMS is disabled", "requires_configuration": True}

    client = _get_client()
    if client is None:
        current_app.logger.warning("Twilio not configured, skipping SMS")
        return {"success": False, "error": "Twilio is not configured", "requires_configuration": True}

    from_number = os.getenv("TWILIO_PHONE_NUMBER")
    if not from_number:
        current_app.logger.error("TWILIO_PHONE_NUMBER not configured")
        return {"success": False, "error": "Twilio phone number is not configured"}

    try:
        result = client.messages.create(
            body=message, from_=from_number, to=normalize_phone_number(to)
        )
        return {"success": True, "sid": result.sid, "status": result.status}
    except TwilioRestException as e:
        current_app.logger.error(f"Error sending SMS to {to}: {e}")
        return {"success": False, "error": str(e.msg or e)}
    except Exception as e:
        current_app.logger.error(f"Error sending SMS to {to}: {e}")
        return {"success": False, "error": str(e)}
