from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import GENDERS, GalleryImage
from ...utils.auth_utils import admin_required, token_required
from ...utils.format_utils import resolve_public_media_url
from ...utils.s3_utils import check_upload, delete_file_from_s3, store_upload

gallery_bp = Blueprint("gallery", __name__, url_prefix="/api/gallery")


def _serialize(image):
    data = image.to_dict()
    data["image_url"] = resolve_public_media_url(image.media_url)
    return data


@gallery_bp.route("", methods=["GET"])
def list_gallery():
    """
    Fetch the shop gallery
    ---
    tags:
      - Gallery
    parameters:
      - in: query
        name: gender
        type: string
        enum: [ALL, MALE, FEMALE, BOTH, UNISEX]
        required: false
      - in: query
        name: tag
        type: string
        required: false
      - in: query
        name: include_inactive
        type: boolean
        required: false
    responses:
      200:
        description: Images ordered by their display order, newest first within the same order
      500:
        description: Internal server error
    """
    try:
        query = select(GalleryImage)
        if request.args.get("include_inactive", "").lower() != "true":
            query = query.where(GalleryImage.is_active.is_(True))

        gender = request.args.get("gender")
        if gender in GENDERS:
            query = query.where(GalleryImage.gender == gender)

        images = db.session.scalars(
            query.order_by(GalleryImage.sort_order.asc(), GalleryImage.created_at.desc())
        ).all()

        tag = request.args.get("tag")
        if tag:
            images = [img for img in images if tag in (img.tags or [])]

        return jsonify([_serialize(img) for img in images])

    except Exception as e:
        current_app.logger.error(f"Error fetching gallery images: {e}")
        return jsonify({"error": "Failed to fetch images", "details": str(e)}), 500


@gallery_bp.route("", methods=["POST"])
@token_required
@admin_required
def create_gallery_image(current_user):
    """
    Input: JSON { media_url, title, description?, tags?, gender?, order? }
    """
    data = request.get_json(silent=True) or {}
    media_url = data.get("media_url")
    title = data.get("title")
    if not media_url or not title:
        return jsonify({"error": "media_url and title are required"}), 400

    gender = data.get("gender") or "UNISEX"
    if gender not in GENDERS:
        return jsonify({"error": f"gender must be one of {', '.join(GENDERS)}"}), 400

    tags = data.get("tags") or []
    if not isinstance(tags, list):
        return jsonify({"error": "tags must be a list"}), 400

    try:
        image = GalleryImage(
            media_url=media_url,
            title=title,
            description=data.get("description") or None,
            tags=tags,
            gender=gender,
            sort_order=int(data.get("order") or 0),
            is_active=True,
        )
        db.session.add(image)
        db.session.commit()
        return jsonify(_serialize(image)), 201

    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({"error": "order must be an integer"}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating gallery image: {e}")
        return jsonify({"error": "Failed to create image", "details": str(e)}), 500


@gallery_bp.route("/<int:image_id>", methods=["PUT"])
@token_required
@admin_required
def update_gallery_image(current_user, image_id):
    image = db.session.get(GalleryImage, image_id)
    if not image:
        return jsonify({"error": "Image not found"}), 404

    data = request.get_json(silent=True) or {}
    if "title" in data:
        if not data["title"]:
            return jsonify({"error": "title cannot be empty"}), 400
        image.title = data["title"]
    if "description" in data:
        image.description = data["description"]
    if "tags" in data:
        image.tags = data["tags"] or []
    if "gender" in data:
        if data["gender"] not in GENDERS:
            return jsonify({"error": f"gender must be one of {', '.join(GENDERS)}"}), 400
        image.gender = data["gender"]
    if "order" in data:
        try:
            image.sort_order = int(data["order"])
        except (TypeError, ValueError):
            return jsonify({"error": "order must be an integer"}), 400
    if "is_active" in data:
        image.is_active = bool(data["is_active"])

    db.session.commit()
    return jsonify(_serialize(image))


@gallery_bp.route("/<int:image_id>", methods=["DELETE"])
@token_required
@admin_required
def delete_gallery_image(current_user, image_id):
    """Removes the row; the stored file is deleted best effort."""
    image = db.session.get(GalleryImage, image_id)
    if not image:
        return jsonify({"error": "Image not found"}), 404

    if image.media_url.lower().startswith(("http://", "https://")):
        try:
            delete_file_from_s3(image.media_url)
        except Exception as e:
            current_app.logger.warning(f"Error deleting gallery file from S3: {e}")

    db.session.delete(image)
    db.session.commit()
    return jsonify({"success": True})


@gallery_bp.route("/upload-image", methods=["POST"])
@token_required
@admin_required
def upload_gallery_image(current_user):
    """
    Upload a gallery image file
    ---
    tags:
      - Gallery
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: file
        type: file
        required: true
        description: Image up to 10MB
    responses:
      201:
        description: Public URL of the stored image, to be sent to POST /api/gallery
        schema:
          type: object
          properties:
            media_url:
              type: string
      400:
        description: Missing file, not an image or too large
    """
    file = request.files.get("file")
    if not file:
        return jsonify({"error": "No file provided"}), 400

    error = check_upload(file, label="Image")
    if error:
        return jsonify({"error": error}), 400

    try:
        return jsonify({"media_url": store_upload(file, "gallery")}), 201

    except Exception as e:
        current_app.logger.error(f"Error uploading gallery image: {e}")
        return jsonify({"error": "Failed to upload image", "details": str(e)}), 500
