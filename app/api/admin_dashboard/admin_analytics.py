from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, select

from app.extensions import db
from ...models import SocialMediaClick, User
from ...utils.auth_utils import admin_required, optional_token, token_required

admin_analytics_bp = Blueprint("admin_analytics_bp", __name__, url_prefix="/api/social-media-clicks")


@admin_analytics_bp.route("", methods=["POST"])
@optional_token
def record_click(current_user):
    """Records one click on a shop or barber social link. Anonymous clicks are allowed."""
    data = request.get_json(silent=True) or {}
    network = (data.get("network") or "").strip().lower()
    url = (data.get("url") or "").strip()
    if not network or not url:
        return jsonify({"error": "network and url are required"}), 400

    try:
        click = SocialMediaClick(
            user_id=current_user.id if current_user else None,
            network=network,
            url=url,
        )
        db.session.add(click)
        db.session.commit()
        return jsonify({"success": True, "click": {"id": click.id, "network": click.network, "url": click.url}}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error recording social media click: {e}")
        return jsonify({"error": "Failed to record click", "details": str(e)}), 500


@admin_analytics_bp.route("/stats", methods=["GET"])
@token_required
@admin_required
def click_stats(current_user):
    """
    Totals per network, clicks in the last 30 days and how many distinct
    signed-in clients clicked at least once.
    """
    total_clicks = db.session.scalar(select(func.count(SocialMediaClick.id))) or 0
    by_network = db.session.execute(
        select(SocialMediaClick.network, func.count(SocialMediaClick.id).label("count"))
        .group_by(SocialMediaClick.network)
        .order_by(func.count(SocialMediaClick.id).desc())
    ).all()

    total_users = db.session.scalar(select(func.count(User.id)).where(User.role == "CLIENT")) or 0
    unique_users = db.session.scalar(
        select(func.count(func.distinct(SocialMediaClick.user_id))).where(SocialMediaClick.user_id.isnot(None))
    ) or 0
    recent_clicks = db.session.scalar(
        select(func.count(SocialMediaClick.id)).where(
            SocialMediaClick.created_at >= datetime.now() - timedelta(days=30)
        )
    ) or 0

    clicks_by_network = [{"network": network, "count": count} for network, count in by_network]
    return jsonify({
        "total_clicks": total_clicks,
        "clicks_by_network": clicks_by_network,
        "unique_users": unique_users,
        "total_users": total_users,
        "engagement_percentage": round(unique_users / total_users * 100, 2) if total_users else 0,
        "recent_clicks": recent_clicks,
        "most_popular_network": clicks_by_network[0] if clicks_by_network else None,
    })
