import json
import os
from typing import Dict, Iterable, Optional

from flask import current_app
from pywebpush import WebPushException, webpush
from sqlalchemy import select

from ..extensions import db
from ..models import PushSubscription


def _vapid_keys():
    return os.getenv("VAPID_PUBLIC_KEY"), os.getenv("VAPID_PRIVATE_KEY")


def is_web_push_configured() -> bool:
    public_key, private_key = _vapid_keys()
    return bool(public_key and private_key)


def send_web_push_to_user(
    user_id: int,
    title: str,
    body: str,
    url: Optional[str] = None,
    data: Optional[Dict] = None,
) -> Dict:
    """
    Deliver a notification to every browser the user subscribed from.
    Subscriptions the push service reports as gone (404/410) are removed.

    Returns:
        Dict with 'sent' and 'failed' counts
    """
    result = {"sent": 0, "failed": 0, "subscriptions": 0}
    if not is_web_push_configured():
        return result

    subscriptions = db.session.scalars(
        select(PushSubscription).where(PushSubscription.user_id == user_id)
    ).all()
    result["subscriptions"] = len(subscriptions)
    if not subscriptions:
        return result

    data = data or {}
    resolved_url = url or (data.get("url") if isinstance(data.get("url"), str) else "/")
    payload = json.dumps(
        {
            "title": title,
            "body": body,
            "icon": "/icon-192.png",
            "badge": "/icon-96.png",
            "url": resolved_url,
            "data": {**data, "url": resolved_url},
        }
    )

    _, private_key = _vapid_keys()
    claims = {"sub": os.getenv("VAPID_SUBJECT", "mailto:info@jbbarbershop.com")}

    for sub in subscriptions:
        try:
            webpush(
                subscription_info={
                    "endpoint": sub.endpoint,
                    "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
                },
                data=payload,
                vapid_private_key=private_key,
                vapid_claims=dict(claims),
            )
            result["sent"] += 1
        except WebPushException as e:
            result["failed"] += 1
            status_code = e.response.status_code if e.response is not None else None
            if status_code in (404, 410):
                db.session.delete(sub)
            else:
                current_app.logger.warning(f"[push] rejected for subscription {sub.id}: {e}")
        except Exception as e:
            # Network errors and bad subscription keys only fail this subscription
            result["failed"] += 1
            current_app.logger.warning(f"[push] error for subscription {sub.id}: {e}")

    if result["failed"]:
        db.session.commit()
        current_app.logger.warning(
            f"[push] failed for {result['failed']} subscription(s) (user_id={user_id})"
        )
    return result


def send_web_push_to_users(
    user_ids: Iterable[int],
    title: str,
    body: str,
    url: Optional[str] = None,
    data: Optional[Dict] = None,
) -> Dict:
    totals = {
        "sent": 0,
        "failed": 0,
        "users_with_subscriptions": 0,
        "users_not_subscribed": 0,
    }
    for user_id in user_ids:
        outcome = send_web_push_to_user(user_id, title, body, url=url, data=data)
        totals["sent"] += outcome["sent"]
        totals["failed"] += outcome["failed"]
        if outcome["subscriptions"]:
            totals["users_with_subscriptions"] += 1
        else:
            totals["users_not_subscribed"] += 1
    return totals
