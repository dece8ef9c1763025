import os
from datetime import datetime, timedelta

from sqlalchemy import func, select

from ..extensions import db
from ..models import Barber, Review
from .notification_service import create_notification, get_admin_ids

LOW_RATING_TEMPLATE = (
    "Thank you for your review. We are sorry your experience was not what you expected. "
    "Your feedback matters to us and helps us improve. "
    "Please reach out so we can look into it and make it right."
)
DEFAULT_TEMPLATE = (
    "Thank you for your review! We are glad you enjoyed your visit to JB BarberShop. "
    "Your support means a lot to the JB family and keeps us improving every day. "
    "See you soon!"
)


def is_reviews_auto_response_enabled():
    return os.getenv("REVIEWS_AUTO_RESPONSE_ENABLED") != "false"


def get_reviews_auto_response_template(rating=None):
    from_env = (os.getenv("REVIEWS_AUTO_RESPONSE_TEMPLATE") or "").strip()
    if from_env:
        return from_env
    if rating is not None and rating <= 3:
        return LOW_RATING_TEMPLATE
    return DEFAULT_TEMPLATE


def get_auto_admin_response(rating=None):
    """Returns ``(admin_response, admin_responded_at)``, both None when disabled."""
    if not is_reviews_auto_response_enabled():
        return None, None
    response = get_reviews_auto_response_template(rating)
    return response, datetime.now() if response else None


def recalculate_barber_rating(barber_id):
    """Store the average review rating on the barber (0 without reviews). Caller commits."""
    average = db.session.scalar(
        select(func.avg(Review.rating)).where(Review.barber_id == barber_id)
    )
    barber = db.session.get(Barber, barber_id)
    if barber is not None:
        barber.rating = round(float(average), 2) if average is not None else 0
    return barber.rating if barber is not None else None


QUICK_RATING_COOLDOWN = timedelta(days=7)


class QuickRatingTooSoon(Exception):
    pass


def _stars(rating):
    return f"{rating} star{'s' if rating > 1 else ''}"


def submit_quick_rating(client, barber, rating, now=None):
    """
    One-tap rating outside a booking. A client may rate the same barber once
    every 7 days; raises QuickRatingTooSoon otherwise. Commits, then notifies
    the barber (and admins for ratings of 3 or less).
    """
    now = now or datetime.now()
    recent = db.session.scalar(
        select(Review.id).where(
            Review.barber_id == barber.id,
            Review.client_id == client.id,
            Review.is_quick_rating.is_(True),
            Review.created_at >= now - QUICK_RATING_COOLDOWN,
        ).limit(1)
    )
    if recent is not None:
        raise QuickRatingTooSoon("You already rated this barber recently. Please try again in a week.")

    admin_response, admin_responded_at = get_auto_admin_response(rating)
    review = Review(
        client_id=client.id,
        barber_id=barber.id,
        rating=rating,
        comment=f"⭐ Quick rating: {_stars(rating)}",
        admin_response=admin_response,
        admin_responded_at=admin_responded_at,
        is_quick_rating=True,
    )
    db.session.add(review)
    db.session.flush()
    average = recalculate_barber_rating(barber.id)

    create_notification(
        barber.user_id,
        "NEW_REVIEW",
        "⭐ New rating received" if rating >= 4 else "⚠️ New rating received",
        f"{client.name} rated you {_stars(rating)}",
        link="/dashboard/barbero/resenas",
    )
    if rating <= 3:
        barber_name = barber.user.name if barber.user else "Barber"
        for admin_id in get_admin_ids():
            create_notification(
                admin_id,
                "NEW_REVIEW",
                "⚠️ Low rating received",
                f"{barber_name} received {_stars(rating)} from {client.name}",
                link="/dashboard/admin/resenas",
            )
    db.session.commit()
    return review, average
