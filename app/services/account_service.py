from datetime import datetime

from sqlalchemy import delete, or_, select, update

from ..extensions import db
from ..models import (
    Appointment,
    Availability,
    Barber,
    BarberMedia,
    BarberPayment,
    Comment,
    DayOff,
    Invoice,
    ManualPayment,
    Message,
    Notification,
    Post,
    PostLike,
    PushSubscription,
    Review,
    Service,
    User,
)

BARBER_REMOVED_REASON = "Appointment cancelled automatically - Barber removed by admin"


def _bulk(statement):
    return db.session.execute(statement.execution_options(synchronize_session=False))


def _delete_appointments_where(condition):
    appointment_ids = select(Appointment.id).where(condition)
    _bulk(update(Review).where(Review.appointment_id.in_(appointment_ids)).values(appointment_id=None))
    _bulk(delete(Appointment).where(condition))


def cancel_active_barber_appointments(barber_id):
    return _bulk(
        update(Appointment)
        .where(
            Appointment.barber_id == barber_id,
            Appointment.status.in_(["PENDING", "CONFIRMED"]),
        )
        .values(
            status="CANCELLED",
            cancelled_at=datetime.now(),
            cancellation_reason=BARBER_REMOVED_REASON,
        )
    ).rowcount


def delete_barber_profile(barber_id):
    """Remove a barber and every row hanging off it. Caller commits."""
    cancel_active_barber_appointments(barber_id)
    for model in (Availability, DayOff, BarberMedia, BarberPayment, ManualPayment, Review):
        _bulk(delete(model).where(model.barber_id == barber_id))
    _delete_appointments_where(Appointment.barber_id == barber_id)
    _bulk(delete(Service).where(Service.barber_id == barber_id))
    _bulk(update(Post).where(Post.barber_id == barber_id).values(barber_id=None))
    _bulk(delete(Barber).where(Barber.id == barber_id))


def delete_user_account(user_id):
    """
    Remove a user with their barber profile, bookings, reviews, posts,
    messages, notifications and push subscriptions. Invoices are kept with
    the recipient unlinked. Caller commits.
    """
    barber_id = db.session.scalar(select(Barber.id).where(Barber.user_id == user_id))
    if barber_id is not None:
        delete_barber_profile(barber_id)

    _bulk(delete(Review).where(Review.client_id == user_id))
    _delete_appointments_where(Appointment.client_id == user_id)

    own_posts = select(Post.id).where(Post.author_id == user_id)
    _bulk(delete(Comment).where(or_(Comment.author_id == user_id, Comment.post_id.in_(own_posts))))
    _bulk(delete(PostLike).where(or_(PostLike.user_id == user_id, PostLike.post_id.in_(own_posts))))
    _bulk(delete(Post).where(Post.author_id == user_id))

    _bulk(delete(Message).where(or_(Message.sender_id == user_id, Message.recipient_id == user_id)))
    _bulk(delete(Notification).where(Notification.user_id == user_id))
    _bulk(delete(PushSubscription).where(PushSubscription.user_id == user_id))
    _bulk(update(Invoice).where(Invoice.recipient_id == user_id).values(recipient_id=None))
    _bulk(delete(User).where(User.id == user_id))
