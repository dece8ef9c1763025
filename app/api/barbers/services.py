# Service catalogue
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import or_, select

from app.extensions import db
from ...models import GENDERS, Appointment, Barber, Service
from ...services.appointment_service import get_barber_for_user
from ...utils.auth_utils import get_user_from_request, is_admin, is_barber_or_admin, staff_required, token_required

services_bp = Blueprint("services", __name__, url_prefix="/api/services")

SERVICE_FIELDS = ("name", "description", "duration", "price", "image")


def _service_with_barber(service):
    data = service.to_dict()
    if service.barber is not None and service.barber.user is not None:
        data["barber"] = {
            "id": service.barber.id,
            "name": service.barber.user.name,
            "image": service.barber.user.image,
        }
    return data


@services_bp.route("", methods=["GET"])
def list_services():
    """
    GET /api/services?barber_id=&gender=&admin_view=true

    - admin_view lists everything and needs a staff token
    - barber_id lists general services plus that barber's own
    - gender MALE / FEMALE filters strictly (UNISEX rows are not included)
    """
    try:
        admin_view = request.args.get("admin_view") == "true"
        if admin_view:
            user, error = get_user_from_request()
            if error:
                return jsonify({"error": "Unauthorized", "message": error}), 401
            if not is_barber_or_admin(user.role):
                return jsonify({"error": "Forbidden"}), 403

        query = select(Service).where(Service.is_active.is_(True))
        barber_id = request.args.get("barber_id", type=int)
        if not admin_view and barber_id:
            query = query.where(or_(Service.barber_id.is_(None), Service.barber_id == barber_id))

        gender = request.args.get("gender")
        if gender in ("MALE", "FEMALE"):
            query = query.where(Service.gender == gender)

        services = db.session.scalars(query.order_by(Service.created_at.asc())).all()
        return jsonify([_service_with_barber(s) for s in services])

    except Exception as e:
        current_app.logger.error(f"Error fetching services: {e}")
        return jsonify({"error": "Failed to fetch services", "details": str(e)}), 500


@services_bp.route("", methods=["POST"])
@token_required
@staff_required
def create_service(current_user):
    """
    POST /api/services
    Input: JSON { name, duration, price, description?, image?, barber_id?, gender? }

    Without barber_id a copy is created for every barber whose gender
    matches (all barbers when gender is UNISEX or missing).
    """
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("name") or not data.get("duration") or not data.get("price"):
            return jsonify({"error": "Name, duration and price are required"}), 400

        gender = data.get("gender") or "UNISEX"
        if gender not in GENDERS:
            return jsonify({"error": f"Gender must be one of {', '.join(GENDERS)}"}), 400

        values = {
            "name": data["name"],
            "description": data.get("description") or None,
            "duration": int(data["duration"]),
            "price": float(data["price"]),
            "image": data.get("image") or None,
            "gender": gender,
        }

        barber_id = data.get("barber_id")
        if barber_id:
            if not db.session.get(Barber, barber_id):
                return jsonify({"error": "Barber not found"}), 404
            service = Service(barber_id=barber_id, **values)
            db.session.add(service)
            db.session.commit()
            return jsonify({"service": service.to_dict()}), 201

        query = select(Barber)
        if gender in ("MALE", "FEMALE"):
            query = query.where(Barber.gender == gender)
        target_barbers = db.session.scalars(query).all()
        if not target_barbers:
            return jsonify({"error": "No barbers match the selected gender"}), 400

        created = [Service(barber_id=b.id, **values) for b in target_barbers]
        db.session.add_all(created)
        db.session.commit()

        return jsonify({
            "message": f"{len(created)} services created for {gender} barbers",
            "services": [s.to_dict() for s in created],
        }), 201

    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({"error": "duration and price must be numbers"}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating service: {e}")
        return jsonify({"error": "Failed to create service", "details": str(e)}), 500


def _can_manage(user, service):
    if is_admin(user.role):
        return True
    barber = get_barber_for_user(user)
    return barber is not None and service.barber_id == barber.id


@services_bp.route("/<int:service_id>", methods=["PUT"])
@token_required
@staff_required
def update_service(current_user, service_id):
    try:
        service = db.session.get(Service, service_id)
        if not service:
            return jsonify({"error": "Service not found"}), 404
        if not _can_manage(current_user, service):
            return jsonify({"error": "You can only edit your own services"}), 403

        data = request.get_json(silent=True) or {}
        if "gender" in data and data["gender"] not in GENDERS:
            return jsonify({"error": f"Gender must be one of {', '.join(GENDERS)}"}), 400
        if "duration" in data:
            data["duration"] = int(data["duration"])
        if "price" in data:
            data["price"] = float(data["price"])
        if data.get("duration", 1) <= 0 or data.get("price", 1) <= 0:
            return jsonify({"error": "duration and price must be positive"}), 400

        for field in SERVICE_FIELDS:
            if field in data:
                setattr(service, field, data[field])
        if "gender" in data:
            service.gender = data["gender"]
        if "is_active" in data:
            service.is_active = bool(data["is_active"])

        db.session.commit()
        return jsonify({"service": service.to_dict()})

    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({"error": "duration and price must be numbers"}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating service: {e}")
        return jsonify({"error": "Failed to update service", "details": str(e)}), 500


@services_bp.route("/<int:service_id>", methods=["DELETE"])
@token_required
@staff_required
def delete_service(current_user, service_id):
    """Services with bookings are deactivated instead of deleted."""
    try:
        service = db.session.get(Service, service_id)
        if not service:
            return jsonify({"error": "Service not found"}), 404
        if not _can_manage(current_user, service):
            return jsonify({"error": "You can only delete your own services"}), 403

        in_use = db.session.scalar(
            select(Appointment.id).where(Appointment.service_id == service.id).limit(1)
        )
        if in_use is not None:
            service.is_active = False
            message = "Service deactivated"
        else:
            db.session.delete(service)
            message = "Service deleted"

        db.session.commit()
        return jsonify({"message": message})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting service: {e}")
        return jsonify({"error": "Failed to delete service", "details": str(e)}), 500
