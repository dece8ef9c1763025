from datetime import timedelta

from sqlalchemy import and_, delete, or_, select, update

from ..extensions import db
from ..models import Appointment, Post, Review

CLEANUP_RETENTION = timedelta(hours=24)
POST_RETENTION_DAYS = 30


def find_appointments_to_clean(now):
    """
    Appointment ids due for removal, grouped by status.

    CANCELLED rows go once they were cancelled (or, lacking that, last
    updated) more than 24 hours ago. COMPLETED and NO_SHOW rows go once
    their start time is more than 24 hours in the past.
    """
    cutoff = now - CLEANUP_RETENTION

    cancelled = db.session.scalars(
        select(Appointment.id).where(
            Appointment.status == "CANCELLED",
            or_(
                Appointment.cancelled_at < cutoff,
                and_(Appointment.cancelled_at.is_(None), Appointment.updated_at < cutoff),
            ),
        )
    ).all()

    finished = db.session.execute(
        select(Appointment.id, Appointment.status).where(
            Appointment.status.in_(["COMPLETED", "NO_SHOW"]),
            Appointment.date < cutoff,
        )
    ).all()

    return {
        "cutoff": cutoff,
        "cancelled": list(cancelled),
        "completed": [row.id for row in finished if row.status == "COMPLETED"],
        "no_show": [row.id for row in finished if row.status == "NO_SHOW"],
    }


def delete_appointments(ids):
    """Bulk delete; reviews survive with their appointment link cleared."""
    if not ids:
        return 0
    db.session.execute(
        update(Review)
        .where(Review.appointment_id.in_(ids))
        .values(appointment_id=None)
        .execution_options(synchronize_session=False)
    )
    deleted = db.session.execute(
        delete(Appointment)
        .where(Appointment.id.in_(ids))
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()
    return deleted


def run_appointment_cleanup(now, dry_run=False):
    found = find_appointments_to_clean(now)
    breakdown = {
        "cancelled": len(found["cancelled"]),
        "completed": len(found["completed"]),
        "no_show": len(found["no_show"]),
    }
    ids = found["cancelled"] + found["completed"] + found["no_show"]

    deleted_count = len(ids) if dry_run else delete_appointments(ids)

    return {
        "dry_run": dry_run,
        "deleted_count": deleted_count,
        "deleted_breakdown": breakdown,
        "cutoff_date": found["cutoff"].isoformat(),
    }


def clean_old_appointments(now):
    """Daily sweep: COMPLETED and CANCELLED appointments dated before the end of yesterday."""
    end_of_yesterday = (now - timedelta(days=1)).replace(
        hour=23, minute=59, second=59, microsecond=999999
    )
    ids = db.session.scalars(
        select(Appointment.id).where(
            Appointment.date < end_of_yesterday,
            Appointment.status.in_(["COMPLETED", "CANCELLED"]),
        )
    ).all()
    return delete_appointments(list(ids))


def cleanup_old_posts(now, days=POST_RETENTION_DAYS):
    cutoff = now - timedelta(days=days)
    posts = db.session.scalars(select(Post).where(Post.created_at < cutoff)).all()
    # ORM deletes so comments and likes go with their post
    for post in posts:
        db.session.delete(post)
    db.session.commit()
    return len(posts)
