# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create an audit trail of
denied attempts (approving, completing, managing users outside one's role).

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- Permissions come from the user's effective role; admins keep their
  admin set while viewing the app as another role
"""

from __future__ import annotations

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import DEFAULT_ROLE_PERMISSIONS
from .user_service import resolve_effective_role
from app.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - UNKNOWN_ACTOR
    - ROLE_SWITCHED
    - USER_DEACTIVATED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_role_permissions(role: str | None) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role or "", set()))


def get_user_permissions(user: User) -> set[str]:
    """
    Get all permission codes for a user.

    Union of the effective role's permissions and, for admins, the admin
    set (an admin viewing as operations can still manage users).
    """
    if user is None or not user.is_active:
        return set()

    permission_codes = get_role_permissions(resolve_effective_role(user))
    if user.role == "admin":
        permission_codes |= get_role_permissions("admin")
    return permission_codes


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events.

    Usage:
        require_permission(user, "APPROVE_TRAVEL_REQUEST", resource=request.path)
    """
    if not user_has_permission(user, permission_code):
        # Log only denials (policy: no granted logs)
        log_security_event(
            user_id=user.id if user else None,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=permission_code,
            reason=f"Missing permission: {permission_code}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")
