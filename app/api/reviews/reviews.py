# Reviews, quick ratings and admin moderation of reviews
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import Appointment, Barber, Review, ReviewDeletionLog
from ...services.appointment_service import get_barber_for_user
from ...services.notification_service import create_notification, get_admin_ids
from ...services.review_service import (
    QuickRatingTooSoon,
    get_auto_admin_response,
    recalculate_barber_rating,
    submit_quick_rating,
)
from ...utils.auth_utils import admin_required, is_staff, token_required

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api")


def _parse_rating(value):
    try:
        rating = int(value)
    except (TypeError, ValueError):
        return None
    if rating < 1 or rating > 5:
        return None
    return rating


@reviews_bp.route("/reviews", methods=["GET"])
@token_required
def list_reviews(current_user):
    """
    GET /api/reviews?barber_id=&limit=
    Barbers may only read their own reviews.
    """
    try:
        barber_id = request.args.get("barber_id", type=int)
        if is_staff(current_user.role) and barber_id:
            own = get_barber_for_user(current_user)
            if not own or own.id != barber_id:
                return jsonify({"error": "Forbidden"}), 403

        query = select(Review)
        if barber_id:
            query = query.where(Review.barber_id == barber_id)
        query = query.order_by(Review.created_at.desc())

        limit = request.args.get("limit", type=int)
        if limit:
            query = query.limit(limit)

        reviews = db.session.scalars(query).all()
        return jsonify([r.to_dict() for r in reviews])

    except Exception as e:
        current_app.logger.error(f"Error fetching reviews: {e}")
        return jsonify({"error": "Failed to fetch reviews", "details": str(e)}), 500


@reviews_bp.route("/reviews", methods=["POST"])
@token_required
def create_review(current_user):
    """
    POST /api/reviews
    Input: JSON { appointment_id, rating (1-5), comment? }

    Behavior:
    - Only the client of a COMPLETED appointment may review it, once (409)
    - An automatic admin response is attached when enabled
    - Admins and the barber are notified; the barber rating is recomputed
    """
    try:
        data = request.get_json(silent=True) or {}
        appointment_id = data.get("appointment_id")
        rating = _parse_rating(data.get("rating"))
        if not appointment_id or data.get("rating") is None:
            return jsonify({"error": "Appointment and rating are required"}), 400
        if rating is None:
            return jsonify({"error": "Rating must be between 1 and 5"}), 400

        appointment = db.session.get(Appointment, appointment_id)
        if not appointment:
            return jsonify({"error": "Appointment not found"}), 404
        if appointment.client_id != current_user.id:
            return jsonify({"error": "You can only review your own appointments"}), 403
        if appointment.status != "COMPLETED":
            return jsonify({"error": "You can only leave reviews for completed appointments"}), 400

        existing = db.session.scalar(select(Review.id).where(Review.appointment_id == appointment.id))
        if existing is not None:
            return jsonify({"error": "You already left a review for this appointment"}), 409

        admin_response, admin_responded_at = get_auto_admin_response(rating)
        review = Review(
            appointment_id=appointment.id,
            client_id=current_user.id,
            barber_id=appointment.barber_id,
            rating=rating,
            comment=data.get("comment") or None,
            admin_response=admin_response,
            admin_responded_at=admin_responded_at,
        )
        db.session.add(review)
        db.session.flush()
        recalculate_barber_rating(appointment.barber_id)

        for admin_id in get_admin_ids():
            create_notification(
                admin_id,
                "NEW_REVIEW",
                "⭐ New review received",
                f"{current_user.name} left a {rating}-star review",
                link="/dashboard/admin/resenas",
            )
        create_notification(
            appointment.barber.user_id,
            "NEW_REVIEW",
            "⭐ New review",
            f"{current_user.name} left you a {rating}-star review",
            link="/dashboard/barbero/resenas",
        )
        db.session.commit()

        return jsonify({"review": review.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating review: {e}")
        return jsonify({"error": "Failed to create review", "details": str(e)}), 500


@reviews_bp.route("/reviews/<int:review_id>", methods=["GET"])
def get_review(review_id):
    review = db.session.get(Review, review_id)
    if not review:
        return jsonify({"error": "Review not found"}), 404
    return jsonify(review.to_dict())


@reviews_bp.route("/reviews/<int:review_id>", methods=["PATCH"])
@token_required
@admin_required
def respond_to_review(current_user, review_id):
    """PATCH /api/reviews/<id> with { admin_response }"""
    data = request.get_json(silent=True) or {}
    admin_response = data.get("admin_response")
    if not admin_response or not isinstance(admin_response, str):
        return jsonify({"error": "admin_response is required"}), 400

    review = db.session.get(Review, review_id)
    if not review:
        return jsonify({"error": "Review not found"}), 404

    review.admin_response = admin_response
    review.admin_responded_at = datetime.now()
    db.session.commit()
    return jsonify({"review": review.to_dict()})


@reviews_bp.route("/reviews/<int:review_id>", methods=["DELETE"])
@token_required
@admin_required
def clear_review_response(current_user, review_id):
    """Removes the admin response; the review itself stays."""
    review = db.session.get(Review, review_id)
    if not review:
        return jsonify({"error": "Review not found"}), 404

    review.admin_response = None
    review.admin_responded_at = None
    db.session.commit()
    return jsonify({"review": review.to_dict()})


@reviews_bp.route("/reviews/<int:review_id>/hard-delete", methods=["DELETE"])
@token_required
@admin_required
def hard_delete_review(current_user, review_id):
    """
    DELETE /api/reviews/<id>/hard-delete
    Input: JSON { reason? }
    Removes the review, writes a deletion log entry and recomputes the barber rating.
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = data.get("reason")
        reason = reason.strip() if isinstance(reason, str) and reason.strip() else "No reason provided"

        review = db.session.get(Review, review_id)
        if not review:
            return jsonify({"error": "Review not found"}), 404

        barber_id = review.barber_id
        db.session.add(
            ReviewDeletionLog(
                review_id=review.id,
                appointment_id=review.appointment_id,
                barber_id=barber_id,
                client_id=review.client_id,
                admin_user_id=current_user.id,
                rating=review.rating,
                comment=review.comment,
                review_created_at=review.created_at,
                reason=reason,
            )
        )
        db.session.delete(review)
        db.session.flush()
        rating = recalculate_barber_rating(barber_id)
        db.session.commit()

        return jsonify({
            "success": True,
            "deleted_review_id": review_id,
            "barber_rating": rating,
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting review: {e}")
        return jsonify({"error": "Failed to delete review", "details": str(e)}), 500


@reviews_bp.route("/admin/reviews/deletions", methods=["GET"])
@token_required
@admin_required
def list_review_deletions(current_user):
    """GET /api/admin/reviews/deletions?limit=50 (1 to 200)"""
    limit = request.args.get("limit", default=50, type=int) or 50
    limit = min(max(limit, 1), 200)

    logs = db.session.scalars(
        select(ReviewDeletionLog).order_by(ReviewDeletionLog.deleted_at.desc()).limit(limit)
    ).all()
    return jsonify([log.to_dict() for log in logs])


def _quick_rating():
    data = request.get_json(silent=True) or {}
    barber_id = data.get("barber_id")
    rating = _parse_rating(data.get("rating"))
    if not barber_id or rating is None:
        return None, None, (jsonify({"error": "barber_id and a rating between 1 and 5 are required"}), 400)

    barber = db.session.get(Barber, barber_id)
    if not barber:
        return None, None, (jsonify({"error": "Barber not found"}), 404)
    return barber, rating, None


def _submit(current_user, barber, rating):
    try:
        review, average = submit_quick_rating(current_user, barber, rating)
        return jsonify({"success": True, "review": review.to_dict(), "avg_rating": average}), 201

    except QuickRatingTooSoon as e:
        return jsonify({"error": str(e)}), 429

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating quick rating: {e}")
        return jsonify({"error": "Failed to submit rating", "details": str(e)}), 500


@reviews_bp.route("/quick-rating", methods=["POST"])
@token_required
def quick_rating(current_user):
    """
    POST /api/quick-rating
    Input: JSON { barber_id, rating }
    One rating per client per barber every 7 days (429 otherwise).
    """
    barber, rating, error = _quick_rating()
    if error:
        return error
    return _submit(current_user, barber, rating)


@reviews_bp.route("/appointments/<int:appointment_id>/quick-rating", methods=["POST"])
@token_required
def appointment_quick_rating(current_user, appointment_id):
    """Quick rating offered from an appointment card; same rules as /api/quick-rating."""
    barber, rating, error = _quick_rating()
    if error:
        return error
    return _submit(current_user, barber, rating)
