# Social feed: posts, likes, views and moderation
import json
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from ...models import Barber, Post, PostLike
from ...services.appointment_service import get_barber_for_user
from ...services.cleanup_service import cleanup_old_posts
from ...services.notification_service import create_notification, notify_admins
from ...utils.auth_utils import (
    admin_required,
    get_user_from_request,
    is_admin,
    is_barber_or_admin,
    optional_token,
    token_required,
)
from ...utils.cron_utils import is_cron_authorized
from ...utils.s3_utils import check_upload, store_upload

posts_bp = Blueprint("posts", __name__, url_prefix="/api/posts")

MAX_IMAGE_BYTES = 20 * 1024 * 1024
MAX_VIDEO_BYTES = 100 * 1024 * 1024
SHARE_TITLE = "Ready to share"
SHARE_MESSAGE = "Open the post and share it to Facebook, Instagram or WhatsApp."


def parse_hashtags(value):
    """
    Hashtags arrive as a JSON array, a JSON-encoded string or a comma list.
    Returns a list of trimmed, non-empty strings.
    """
    if isinstance(value, list):
        return [t.strip() for t in value if isinstance(t, str) and t.strip()]
    if not value or not isinstance(value, str):
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [t.strip() for t in parsed if isinstance(t, str) and t.strip()]
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def media_kind(content_type):
    if (content_type or "").startswith("image/"):
        return "PHOTO"
    if (content_type or "").startswith("video/"):
        return "VIDEO"
    return None


@posts_bp.route("", methods=["GET"])
@optional_token
def list_posts(current_user):
    """
    GET /api/posts?status=&author_id=
    Purpose: Feed of active posts, newest first.

    Visibility:
    - anonymous callers see APPROVED posts
    - admins see everything, optionally filtered by status
    - everyone else sees APPROVED posts plus their own
    """
    try:
        query = select(Post).where(Post.is_active.is_(True))

        if current_user is None:
            query = query.where(Post.status == "APPROVED")
        elif is_admin(current_user.role):
            status = request.args.get("status")
            if status in ("PENDING", "APPROVED", "REJECTED"):
                query = query.where(Post.status == status)
        else:
            query = query.where(
                or_(Post.status == "APPROVED", Post.author_id == current_user.id)
            )

        author_id = request.args.get("author_id", type=int)
        if author_id:
            query = query.where(Post.author_id == author_id)

        posts = db.session.scalars(query.order_by(Post.created_at.desc())).all()
        user_id = current_user.id if current_user else None
        return jsonify([p.to_dict(user_id=user_id) for p in posts])

    except Exception as e:
        current_app.logger.error(f"Error fetching posts: {e}")
        return jsonify({"error": "Failed to fetch posts", "details": str(e)}), 500


@posts_bp.route("", methods=["POST"])
@token_required
def create_post(current_user):
    """
    POST /api/posts
    Input: multipart form (file, caption, hashtags, barber_id) or JSON with media_url.

    Behavior:
    - images up to 20MB, videos up to 100MB, uploaded to S3
    - staff posts are BARBER_WORK, client posts are CLIENT_SHARE
    - posts are approved immediately and admins get a "ready to share" notification
    """
    try:
        media_file = request.files.get("file")
        if media_file:
            form = request.form
            media_url = None
        else:
            form = request.get_json(silent=True) or {}
            media_url = (form.get("media_url") or "").strip()

        if not media_file and not media_url:
            return jsonify({"error": "Media (photo or video) is required"}), 400

        if media_file:
            kind = media_kind(media_file.mimetype)
            if kind is None:
                return jsonify({
                    "error": "Unsupported media. Allowed: images and videos",
                    "code": "UNSUPPORTED_MEDIA",
                }), 400
            max_bytes = MAX_VIDEO_BYTES if kind == "VIDEO" else MAX_IMAGE_BYTES
            error = check_upload(media_file, ("image/", "video/"), max_bytes, label="File")
            if error:
                return jsonify({"error": error, "code": "FILE_TOO_LARGE"}), 400
        else:
            if not media_url.lower().startswith(("http://", "https://")):
                return jsonify({"error": "media_url must be an http(s) URL"}), 400
            kind = (form.get("media_type") or "PHOTO").upper()
            if kind not in ("PHOTO", "VIDEO"):
                return jsonify({"error": "media_type must be PHOTO or VIDEO"}), 400

        staff = is_barber_or_admin(current_user.role)
        barber_id = None
        if staff:
            raw_barber_id = form.get("barber_id")
            if raw_barber_id not in (None, ""):
                try:
                    barber_id = int(raw_barber_id)
                except (TypeError, ValueError):
                    return jsonify({"error": "barber_id must be an integer"}), 400
                if db.session.get(Barber, barber_id) is None:
                    return jsonify({"error": "Barber not found"}), 404
            else:
                barber = get_barber_for_user(current_user)
                barber_id = barber.id if barber else None

        if media_file:
            media_url = store_upload(media_file, f"posts/{current_user.id}")

        caption = (form.get("caption") or "").strip()
        post = Post(
            author_id=current_user.id,
            author_type="BARBER" if staff else "CLIENT",
            post_type="BARBER_WORK" if staff else "CLIENT_SHARE",
            media_url=media_url,
            media_type=kind,
            caption=caption or None,
            hashtags=parse_hashtags(form.get("hashtags")),
            barber_id=barber_id,
            status="APPROVED",
        )
        db.session.add(post)
        db.session.commit()

        notify_admins("POST_APPROVED", SHARE_TITLE, SHARE_MESSAGE, link=f"/feed?post={post.id}", post_id=post.id)

        return jsonify({"message": "Post created successfully", "post": post.to_dict(current_user.id)}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating post: {e}")
        return jsonify({"error": "Failed to create post", "details": str(e)}), 500


@posts_bp.route("/<int:post_id>/like", methods=["POST"])
@token_required
def toggle_like(current_user, post_id):
    """
    POST /api/posts/<id>/like
    Likes the post, or removes the caller's like if it already exists.
    The author is notified of new likes from other users.
    """
    try:
        post = db.session.get(Post, post_id)
        if not post:
            return jsonify({"error": "Post not found"}), 404

        existing = db.session.scalar(
            select(PostLike).where(PostLike.user_id == current_user.id, PostLike.post_id == post.id)
        )

        if existing:
            db.session.delete(existing)
            db.session.execute(
                update(Post)
                .where(Post.id == post.id, Post.likes > 0)
                .values(likes=Post.likes - 1)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            db.session.refresh(post)
            return jsonify({"liked": False, "likes": post.likes, "message": "Post unliked"})

        db.session.add(PostLike(user_id=current_user.id, post_id=post.id))
        db.session.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(likes=Post.likes + 1)
            .execution_options(synchronize_session=False)
        )
        if post.author_id != current_user.id:
            create_notification(
                post.author_id,
                "POST_LIKE",
                "❤️ New like",
                f"{current_user.name} liked your post",
                link="/feed",
                post_id=post.id,
            )
        db.session.commit()
        db.session.refresh(post)

        return jsonify({"liked": True, "likes": post.likes, "message": "Post liked"})

    except IntegrityError:
        # Concurrent double-tap; the like already exists
        db.session.rollback()
        return jsonify({"error": "Like already registered"}), 409

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error toggling like: {e}")
        return jsonify({"error": "Failed to toggle like", "details": str(e)}), 500


@posts_bp.route("/<int:post_id>/view", methods=["POST"])
def register_view(post_id):
    try:
        updated = db.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(view_count=Post.view_count + 1)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
        if not updated:
            return jsonify({"error": "Post not found"}), 404

        view_count = db.session.scalar(select(Post.view_count).where(Post.id == post_id))
        return jsonify({"view_count": view_count})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error incrementing view count: {e}")
        return jsonify({"error": "Failed to increment view count", "details": str(e)}), 500


@posts_bp.route("/<int:post_id>/approve", methods=["POST"])
@token_required
@admin_required
def moderate_post(current_user, post_id):
    """
    POST /api/posts/<id>/approve
    Input: JSON { action: "approve" | "reject", reason? }
    """
    try:
        data = request.get_json(silent=True) or {}
        action = data.get("action")
        if action not in ("approve", "reject"):
            return jsonify({"error": "action must be 'approve' or 'reject'"}), 400

        post = db.session.get(Post, post_id)
        if not post:
            return jsonify({"error": "Post not found"}), 404

        was_approved = post.status == "APPROVED"
        reason = data.get("reason")
        if action == "approve":
            post.status = "APPROVED"
            post.rejection_reason = None
            create_notification(
                post.author_id,
                "POST_APPROVED",
                "Post approved",
                "Your post was approved and is now visible to everyone.",
                link="/feed",
                post_id=post.id,
            )
        else:
            post.status = "REJECTED"
            post.rejection_reason = reason
            create_notification(
                post.author_id,
                "POST_REJECTED",
                "Post rejected",
                f"Your post was not approved. {reason or 'No reason provided.'}",
                link="/feed",
                post_id=post.id,
            )
        db.session.commit()

        if action == "approve" and not was_approved:
            notify_admins("POST_APPROVED", SHARE_TITLE, SHARE_MESSAGE, link=f"/feed?post={post.id}", post_id=post.id)

        return jsonify({"message": f"Post {post.status.lower()}", "post": post.to_dict(current_user.id)})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error moderating post: {e}")
        return jsonify({"error": "Failed to update post", "details": str(e)}), 500


@posts_bp.route("/<int:post_id>", methods=["DELETE"])
@token_required
def delete_post(current_user, post_id):
    try:
        post = db.session.get(Post, post_id)
        if not post:
            return jsonify({"error": "Post not found"}), 404

        if post.author_id != current_user.id and not is_admin(current_user.role):
            return jsonify({"error": "You can only delete your own posts"}), 403

        db.session.delete(post)
        db.session.commit()
        return jsonify({"message": "Post deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting post: {e}")
        return jsonify({"error": "Failed to delete post", "details": str(e)}), 500


@posts_bp.route("/cleanup", methods=["POST"])
def cleanup_posts():
    """
    POST /api/posts/cleanup
    Deletes posts older than 30 days. Cron secret or admin token.
    """
    if not is_cron_authorized():
        user, error = get_user_from_request()
        if error:
            return jsonify({"error": "Unauthorized", "message": error}), 401
        if not is_admin(user.role):
            return jsonify({"error": "Forbidden"}), 403

    try:
        deleted = cleanup_old_posts(datetime.now())
        return jsonify({
            "success": True,
            "deleted_count": deleted,
            "message": f"Deleted {deleted} posts older than 30 days",
        })

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error cleaning up old posts: {e}")
        return jsonify({"error": "Failed to clean up old posts", "details": str(e)}), 500
