# backend/app/routes/bookings.py
"""
Booking API Routes

- GET  /api/bookings?requestId=  - Bookings, optionally for one request
- POST /api/bookings             - Record a booking on an approved request
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import booking_service
from ..services.status_service import classify_booking_status
from ..validation import ValidationError, optional_json_object
from ..decorators import require_actor, require_permission, require_any_permission


bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _serialize(booking) -> dict:
    data = booking.to_dict()
    data["status_badge"] = classify_booking_status(booking.status).to_dict()
    return data


@bookings_bp.get("")
@require_actor
@require_any_permission("MANAGE_BOOKINGS", "VIEW_ALL_REQUESTS")
def list_bookings_route():
    try:
        bookings = booking_service.list_bookings(request.args.get("requestId", type=int))
        return jsonify({"bookings": [_serialize(b) for b in bookings]}), 200
    except Exception:
        current_app.logger.exception("Failed to list bookings")
        return jsonify({"error": "Internal server error"}), 500


@bookings_bp.post("")
@require_actor
@require_permission("MANAGE_BOOKINGS")
def create_booking_route():
    """
    Request body:
        requestId (required), type (required), provider, bookingReference,
        cost, perDiemRate (per_diem only; cost is then derived), details
    """
    try:
        payload = dict(optional_json_object(request.get_json(silent=True)))
        request_id = payload.pop("requestId", None)
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            raise ValidationError("requestId must be an integer")

        booking = booking_service.create_booking(request_id, payload, booked_by=g.current_user)
        return jsonify({"booking": _serialize(booking)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create booking")
        return jsonify({"error": "Internal server error"}), 500
