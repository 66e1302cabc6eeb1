# backend/app/routes/travel_requests.py
"""
Travel Request API Routes

- GET   /api/travel-requests                 - Role-scoped listing
- GET   /api/travel-requests/:id             - One request with details
- POST  /api/travel-requests                 - Submit (-> submitted)
- PATCH /api/travel-requests/:id/approve     - submitted -> pm_approved
- PATCH /api/travel-requests/:id/reject      - submitted -> pm_rejected
- PATCH /api/travel-requests/:id/cancel      - submitted -> cancelled
- POST  /api/travel-requests/:id/complete    - pm_approved -> operations_completed
- GET   /api/travel-requests/:id/route       - Formatted route, badge, suggested team

SECURITY:
- Actor ids (requester, approver, completer) come from g.current_user,
  never from the request body
- Transition permissions are checked here; the state rules live in
  lifecycle_service
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import lifecycle_service
from ..services.lifecycle_service import LifecycleError
from ..services.permission_service import PermissionDeniedError
from ..services.roster_service import RosterError
from ..services.status_service import classify_request_status
from ..services.destination_service import format_destinations, format_route, suggest_operations_team
from ..services.cost_service import estimated_total
from ..services.user_service import resolve_effective_role
from ..models import OPERATIONS_ROLES
from ..validation import ValidationError, optional_json_object
from ..decorators import require_actor, require_permission, require_any_permission


travel_requests_bp = Blueprint("travel_requests", __name__, url_prefix="/api/travel-requests")

VIEW_PERMISSIONS = ("VIEW_OWN_REQUESTS", "VIEW_ALL_REQUESTS", "VIEW_ASSIGNED_REQUESTS")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def _audience() -> str | None:
    return "operations" if resolve_effective_role(g.current_user) in OPERATIONS_ROLES else None


def _serialize(tx, *, include_details: bool = False) -> dict:
    data = tx.to_dict(include_details=include_details)
    data["estimated_total_cost"] = estimated_total(tx)
    data["route"] = format_route(tx)
    data["status_badge"] = classify_request_status(tx.status, audience=_audience()).to_dict()
    return data


@travel_requests_bp.get("")
@require_actor
@require_any_permission(*VIEW_PERMISSIONS)
def list_travel_requests_route():
    """
    Query parameters:
        myRequestsOnly: pm/admin, own requests only
        needsApproval: pm/admin, submitted requests only
        status: exact status, or "completed-rejected" for operations history
        projectId: local project id
        limit: max rows (default 500)
    """
    try:
        project_id = request.args.get("projectId", type=int)
        limit = min(request.args.get("limit", 500, type=int), 1000)

        requests = lifecycle_service.list_requests_for_user(
            g.current_user,
            my_requests_only=_flag("myRequestsOnly"),
            needs_approval=_flag("needsApproval"),
            status=request.args.get("status") or None,
            project_id=project_id,
            limit=limit,
        )

        return jsonify({
            "travel_requests": [_serialize(tx, include_details=True) for tx in requests],
            "count": len(requests),
        }), 200

    except (LifecycleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list travel requests")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.get("/<int:request_id>")
@require_actor
@require_any_permission(*VIEW_PERMISSIONS)
def get_travel_request_route(request_id: int):
    try:
        tx = lifecycle_service.get_request_for_user(request_id, g.current_user)
        return jsonify({"travel_request": _serialize(tx, include_details=True)}), 200
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.post("")
@require_actor
@require_permission("SUBMIT_TRAVEL_REQUEST")
def submit_travel_request_route():
    """
    Submit a travel request.

    Request body (camelCase or snake_case):
        travelerId        local id, roster id or email (default: the actor)
        projectId         local or roster id (required for delivery)
        origin, destination | destinations[]
        purpose           delivery | sales | event | other
        customPurpose     required for other
        departureDate, returnDate
        estimatedFlightCost, estimatedHotelCost, estimatedOtherCost
        notes

    Error responses:
        400: validation error, unknown traveller / project
        502: roster provider unavailable while resolving a roster id
    """
    try:
        tx = lifecycle_service.submit_request(request.get_json(silent=True), requester=g.current_user)
        return jsonify({"travel_request": _serialize(tx, include_details=True)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RosterError as e:
        current_app.logger.warning("Roster lookup failed during submission: %s", e)
        return jsonify({"error": "Roster provider unavailable"}), 502
    except Exception:
        current_app.logger.exception("Failed to submit travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.patch("/<int:request_id>/approve")
@require_actor
@require_permission("APPROVE_TRAVEL_REQUEST")
def approve_travel_request_route(request_id: int):
    """
    Approve a submitted request.

    Request body (optional):
        assignedOperationsTeam: operations_ksa | operations_uae
            (default: suggested from the destinations)
    """
    try:
        payload = optional_json_object(request.get_json(silent=True))
        tx = lifecycle_service.approve_request(
            request_id,
            approver=g.current_user,
            assigned_operations_team=payload.get("assignedOperationsTeam") or None,
        )
        return jsonify({
            "travel_request": _serialize(tx),
            "message": f"Travel request {request_id} approved"
        }), 200
    except (LifecycleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to approve travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.patch("/<int:request_id>/reject")
@require_actor
@require_permission("APPROVE_TRAVEL_REQUEST")
def reject_travel_request_route(request_id: int):
    """Request body (optional): reason."""
    try:
        payload = optional_json_object(request.get_json(silent=True))
        reason = payload.get("reason")
        if reason is not None and not isinstance(reason, str):
            raise ValidationError("reason must be a string")

        tx = lifecycle_service.reject_request(request_id, approver=g.current_user, reason=reason)
        return jsonify({
            "travel_request": _serialize(tx),
            "message": f"Travel request {request_id} rejected"
        }), 200
    except (LifecycleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to reject travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.patch("/<int:request_id>/cancel")
@require_actor
@require_any_permission("SUBMIT_TRAVEL_REQUEST", "CANCEL_ANY_REQUEST")
def cancel_travel_request_route(request_id: int):
    try:
        tx = lifecycle_service.cancel_request(request_id, actor=g.current_user)
        return jsonify({
            "travel_request": _serialize(tx),
            "message": f"Travel request {request_id} cancelled"
        }), 200
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except LifecycleError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to cancel travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.post("/<int:request_id>/complete")
@require_actor
@require_permission("COMPLETE_TRAVEL_REQUEST")
def complete_travel_request_route(request_id: int):
    """
    Record bookings and complete an approved request.

    Request body (optional):
        bookings: [{type, provider, bookingReference, cost, perDiemRate}, ...]
            rows without a type or a cost are dropped

    Error responses:
        400: request not pm_approved, invalid booking
        403: region enforcement on and actor is not the assigned team
        404: request not found
    """
    try:
        payload = optional_json_object(request.get_json(silent=True))
        tx = lifecycle_service.complete_request(
            request_id,
            completed_by=g.current_user,
            bookings=payload.get("bookings"),
            enforce_region=current_app.config["ENFORCE_OPERATIONS_REGION"],
        )
        return jsonify({
            "travel_request": _serialize(tx, include_details=True),
            "message": f"Travel request {request_id} completed"
        }), 200
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except (LifecycleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to complete travel request")
        return jsonify({"error": "Internal server error"}), 500


@travel_requests_bp.get("/<int:request_id>/route")
@require_actor
@require_any_permission(*VIEW_PERMISSIONS)
def travel_request_route_summary(request_id: int):
    try:
        tx = lifecycle_service.get_request_for_user(request_id, g.current_user)
        destinations = format_destinations(tx)
        return jsonify({
            "id": tx.id,
            "destinations": destinations,
            "route": format_route(tx),
            "status_badge": classify_request_status(tx.status, audience=_audience()).to_dict(),
            "suggested_operations_team": suggest_operations_team(destinations),
            "assigned_operations_team": tx.assigned_operations_team,
        }), 200
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to format travel request route")
        return jsonify({"error": "Internal server error"}), 500
