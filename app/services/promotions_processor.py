from sqlalchemy import select, update

from ..extensions import db
from ..models import Notification, Promotion, User
from .push_service import is_web_push_configured, send_web_push_to_users

PROMOTION_LINK = "/inicio"


def compute_promotion_status(start_date, end_date, now):
    if end_date <= now:
        return "EXPIRED"
    if start_date <= now:
        return "ACTIVE"
    return "SCHEDULED"


def target_user_ids(target_role):
    query = select(User.id)
    if target_role:
        query = query.where(User.role == target_role)
    return db.session.scalars(query).all()


def process_promotions(now):
    """
    Move promotions through their lifecycle and announce newly active ones.

    Each promotion is announced once: ``sent_count`` records how many
    in-app notifications were created, and a promotion with a non-zero
    count is only switched to ACTIVE.
    """
    push_configured = is_web_push_configured()

    # CANCELLED promotions are never touched
    expired = db.session.execute(
        update(Promotion)
        .where(Promotion.status.in_(["SCHEDULED", "ACTIVE"]), Promotion.end_date <= now)
        .values(status="EXPIRED")
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()

    to_activate = db.session.scalars(
        select(Promotion).where(
            Promotion.status == "SCHEDULED",
            Promotion.start_date <= now,
            Promotion.end_date > now,
        )
    ).all()

    stats = {
        "activated": 0,
        "notifications_created": 0,
        "promotions_notified": 0,
        "push_sent": 0,
        "push_failed": 0,
        "users_with_subscriptions": 0,
        "users_not_subscribed": 0,
    }

    for promo in to_activate:
        if promo.sent_count > 0:
            promo.status = "ACTIVE"
            db.session.commit()
            stats["activated"] += 1
            continue

        user_ids = target_user_ids(promo.target_role)
        title = f"🎉 {promo.title}"
        message = f"{promo.message} - {promo.discount}" if promo.discount else promo.message

        try:
            promo.status = "ACTIVE"
            for user_id in user_ids:
                db.session.add(
                    Notification(
                        user_id=user_id,
                        type="NEW_MESSAGE",
                        title=title,
                        message=message,
                        link=PROMOTION_LINK,
                        is_read=False,
                    )
                )
            promo.sent_count = len(user_ids)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        stats["activated"] += 1
        stats["promotions_notified"] += 1
        stats["notifications_created"] += len(user_ids)

        if push_configured and user_ids:
            push_stats = send_web_push_to_users(
                user_ids,
                title,
                message,
                url=PROMOTION_LINK,
                data={"promotion_id": promo.id},
            )
            stats["push_sent"] += push_stats["sent"]
            stats["push_failed"] += push_stats["failed"]
            stats["users_with_subscriptions"] += push_stats["users_with_subscriptions"]
            stats["users_not_subscribed"] += push_stats["users_not_subscribed"]

    return {
        "now": now.isoformat(),
        "expired": expired,
        "push_configured": push_configured,
        **stats,
    }
