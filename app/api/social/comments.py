import math

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, select

from app.extensions import db
from ...models import Comment, Post
from ...services.notification_service import create_notification
from ...utils.auth_utils import is_admin, token_required

comments_bp = Blueprint("comments", __name__, url_prefix="/api/posts")

MAX_COMMENT_LENGTH = 1000


@comments_bp.route("/<int:post_id>/comments", methods=["GET"])
def list_comments(post_id):
    """
    GET /api/posts/<id>/comments?page=1&limit=10
    Newest first, with pagination metadata.
    """
    try:
        page = max(request.args.get("page", default=1, type=int) or 1, 1)
        limit = request.args.get("limit", default=10, type=int) or 10
        if limit < 1 or limit > 100:
            return jsonify({"error": "limit must be between 1 and 100"}), 400

        if not db.session.get(Post, post_id):
            return jsonify({"error": "Post not found"}), 404

        total_count = db.session.scalar(
            select(func.count(Comment.id)).where(Comment.post_id == post_id)
        )
        comments = db.session.scalars(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        total_pages = math.ceil(total_count / limit)
        return jsonify({
            "success": True,
            "data": {
                "comments": [c.to_dict() for c in comments],
                "pagination": {
                    "current_page": page,
                    "total_pages": total_pages,
                    "total_count": total_count,
                    "limit": limit,
                    "has_next_page": page < total_pages,
                    "has_previous_page": page > 1,
                },
            },
        })

    except Exception as e:
        current_app.logger.error(f"Error fetching comments: {e}")
        return jsonify({"error": "Failed to fetch comments", "details": str(e)}), 500


@comments_bp.route("/<int:post_id>/comments", methods=["POST"])
@token_required
def add_comment(current_user, post_id):
    """
    POST /api/posts/<id>/comments
    Input: JSON { content } (1 to 1000 characters after trimming)
    """
    try:
        data = request.get_json(silent=True) or {}
        content = data.get("content")
        if not isinstance(content, str) or not content.strip():
            return jsonify({"error": "Comment content is required"}), 400

        content = content.strip()
        if len(content) > MAX_COMMENT_LENGTH:
            return jsonify({"error": "Comment content must be less than 1000 characters"}), 400

        post = db.session.get(Post, post_id)
        if not post:
            return jsonify({"error": "Post not found"}), 404

        comment = Comment(post_id=post.id, author_id=current_user.id, content=content)
        db.session.add(comment)
        db.session.flush()

        if post.author_id != current_user.id:
            create_notification(
                post.author_id,
                "POST_COMMENT",
                "💬 New comment",
                f"{current_user.name} commented on your post",
                link="/feed",
                post_id=post.id,
                comment_id=comment.id,
            )
        db.session.commit()

        return jsonify({
            "success": True,
            "data": comment.to_dict(),
            "message": "Comment created successfully",
        }), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating comment: {e}")
        return jsonify({"error": "Failed to create comment", "details": str(e)}), 500


@comments_bp.route("/<int:post_id>/comments/<int:comment_id>", methods=["DELETE"])
@token_required
def delete_comment(current_user, post_id, comment_id):
    try:
        comment = db.session.get(Comment, comment_id)
        if not comment or comment.post_id != post_id:
            return jsonify({"error": "Comment not found"}), 404

        if comment.author_id != current_user.id and not is_admin(current_user.role):
            return jsonify({"error": "You can only delete your own comments"}), 403

        db.session.delete(comment)
        db.session.commit()
        return jsonify({"message": "Comment deleted successfully"})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting comment: {e}")
        return jsonify({"error": "Failed to delete comment", "details": str(e)}), 500
