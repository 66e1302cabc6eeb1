# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models import User
from .permissions import validate_permission_code
from .services import permission_service
from .services.permission_service import PermissionDeniedError


def _has_actor() -> bool:
    return hasattr(g, 'current_user') and g.current_user is not None


def _check_codes(codes) -> None:
    # Every code must exist in PERMISSION_DEFINITIONS
    unknown = [code for code in codes if not validate_permission_code(code)]
    if unknown:
        raise ValueError(f"Unknown permission code(s): {', '.join(unknown)}")


def require_actor(f):
    """
    Resolve the acting user from the gateway-supplied header.

    Login and sessions are handled upstream; the gateway forwards the
    authenticated user's id in ACTOR_HEADER (default X-User-Id).

    Sets:
    - g.current_user: the active User making the request

    Returns 401 if:
    - The header is missing or not an integer id
    - No user has that id
    - The user is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config["ACTOR_HEADER"]
        raw = (request.headers.get(header) or "").strip()

        if not raw:
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, int(raw)) if raw.isdigit() else None

        if user is None or not user.is_active:
            permission_service.log_security_event(
                user_id=user.id if user else None,
                event_type="UNKNOWN_ACTOR",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"{header}={raw!r} is not an active user",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission. Denials are logged to security_events."""
    _check_codes([permission_code])

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _has_actor():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    g.current_user,
                    permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    _check_codes(permission_codes)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _has_actor():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            user_permissions = permission_service.get_user_permissions(user)

            if not any(code in user_permissions for code in permission_codes):
                permission_service.log_security_event(
                    user_id=user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"ANY_OF:{','.join(permission_codes)}",
                    reason=f"Missing any of: {', '.join(permission_codes)}",
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": list(permission_codes),
                    "message": f"Requires any of: {', '.join(permission_codes)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
