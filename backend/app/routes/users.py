# Overview: Flask API routes for the user directory and admin role switching.

# backend/app/routes/users.py
"""
User directory routes.

- GET    /api/users                 - Active users (traveller pickers)
- POST   /api/users                 - Create user (MANAGE_USERS)
- PUT    /api/users/:id             - Update user (MANAGE_USERS)
- DELETE /api/users/:id             - Deactivate user (MANAGE_USERS)
- POST   /api/admin/switch-role     - Admin views the app as another role
- GET    /api/me                    - Acting user, effective role, permissions

Users are never hard-deleted; requests and documents keep pointing at them.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import user_service, permission_service
from ..validation import ValidationError, ConflictError, optional_json_object
from ..decorators import require_actor, require_permission
from ..permissions import get_permission_definition

users_bp = Blueprint("users", __name__, url_prefix="/api")


def _me_payload(user) -> dict:
    data = user.to_dict()
    data["effective_role"] = user_service.resolve_effective_role(user)
    data["permissions"] = sorted(permission_service.get_user_permissions(user))
    return data


@users_bp.get("/users")
@require_actor
def list_users():
    """
    Query params:
    - include_inactive: bool (default false), honoured for MANAGE_USERS only
    """
    include_inactive = (
        request.args.get("include_inactive", "false").lower() == "true"
        and permission_service.user_has_permission(g.current_user, "MANAGE_USERS")
    )
    users = user_service.list_users(include_inactive=include_inactive)
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("/users")
@require_actor
@require_permission("MANAGE_USERS")
def create_user():
    """
    Request body:
    - email, firstName, role (required)
    - lastName, zohoUserId, annualTravelBudget (optional)
    """
    try:
        user = user_service.create_user(request.get_json(silent=True))
        current_app.logger.info("User %s created by %s", user.id, g.current_user.id)
        return jsonify({"user": user.to_dict()}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/users/<int:user_id>")
@require_actor
@require_permission("MANAGE_USERS")
def update_user(user_id: int):
    try:
        user = user_service.update_user(user_id, request.get_json(silent=True))
        return jsonify({"user": user.to_dict()})
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/users/<int:user_id>")
@require_actor
@require_permission("MANAGE_USERS")
def deactivate_user(user_id: int):
    try:
        user = user_service.deactivate_user(user_id, acting_user_id=g.current_user.id)
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="USER_DEACTIVATED",
            success=True,
            resource=request.path,
            action="DEACTIVATE_USER",
            reason=f"Deactivated user {user.id}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"user": user.to_dict(), "message": "User deactivated"})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to deactivate user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/admin/switch-role")
@require_actor
@require_permission("SWITCH_ROLE")
def switch_role():
    """
    Request body:
    - role: manager | pm | operations_ksa | operations_uae, or admin / null
      to go back to the admin view
    """
    try:
        payload = optional_json_object(request.get_json(silent=True))
        user = user_service.switch_active_role(g.current_user, payload.get("role"))
    except PermissionError as e:
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    permission_service.log_security_event(
        user_id=user.id,
        event_type="ROLE_SWITCHED",
        success=True,
        resource=request.path,
        action="SWITCH_ROLE",
        reason=f"Viewing as {user_service.resolve_effective_role(user)}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"user": _me_payload(user)})


@users_bp.get("/me")
@require_actor
def me():
    data = _me_payload(g.current_user)
    data["permission_details"] = [
        get_permission_definition(code) for code in data["permissions"]
    ]
    return jsonify({"user": data})
