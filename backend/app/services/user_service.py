# Overview: Service-layer operations for users; role resolution, admin CRUD and roster reconciliation.

"""
User Directory Service

ROLES:
    manager, pm, operations_ksa, operations_uae, admin

EFFECTIVE ROLE:
    Admins may set active_role to view the app as another role. Every
    dashboard and listing takes the effective role from
    resolve_effective_role(user) instead of reading active_role directly.

RECONCILIATION:
    Callers may reference a user by local id, roster (Zoho) id or email.
    resolve_user_reference() turns any of these into a local User,
    pulling the employee from the roster provider on first sight, so the
    rest of the system only ever stores local ids.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User, USER_ROLES
from ..validation import ModelValidationPolicy, ValidationError, ConflictError, validate_payload
from .roster_service import get_roster_client, RosterUser


SWITCHABLE_ROLES = ("manager", "pm", "operations_ksa", "operations_uae")

USER_POLICY = ModelValidationPolicy(
    writable_fields={"email", "first_name", "last_name", "role", "zoho_user_id", "annual_travel_budget", "is_active"},
    required_on_create={"email", "first_name", "role"},
    aliases={
        "firstName": "first_name",
        "lastName": "last_name",
        "zohoUserId": "zoho_user_id",
        "annualTravelBudget": "annual_travel_budget",
        "isActive": "is_active",
    },
)


def resolve_effective_role(user: User) -> str:
    """Role the user is acting as: an admin's active_role when set, else the stored role."""
    if user.role == "admin" and user.active_role:
        return user.active_role
    return user.role


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError(f"User {user_id} not found")
    return user


def list_users(*, include_inactive: bool = False) -> list[User]:
    q = User.query
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc()).all()


def _validate_role(role: str | None) -> None:
    if role is not None and role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")


def _validate_email(email: str | None) -> None:
    if email is not None and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email must be a valid email address")


def create_user(payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    _validate_role(patch.get("role"))
    patch["email"] = patch["email"].lower()
    _validate_email(patch["email"])

    if User.query.filter_by(email=patch["email"]).first():
        raise ConflictError("User with this email already exists")

    patch.setdefault("last_name", "")
    if patch.get("annual_travel_budget") is None:
        patch["annual_travel_budget"] = current_app.config["DEFAULT_ANNUAL_TRAVEL_BUDGET"]

    user = User(**patch)
    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, payload: dict) -> User:
    user = get_user(user_id)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    _validate_role(patch.get("role"))

    if "email" in patch:
        patch["email"] = patch["email"].lower()
        _validate_email(patch["email"])
        existing = User.query.filter_by(email=patch["email"]).first()
        if existing and existing.id != user.id:
            raise ConflictError("User with this email already exists")

    for key, value in patch.items():
        setattr(user, key, value)

    # Only admins may impersonate
    if user.role != "admin":
        user.active_role = None

    db.session.commit()
    return user


def deactivate_user(user_id: int, *, acting_user_id: int) -> User:
    """
    Deactivate instead of delete: requests and documents keep pointing at
    the user for the audit trail.
    """
    if user_id == acting_user_id:
        raise ValidationError("Cannot deactivate your own account")

    user = get_user(user_id)
    user.is_active = False
    db.session.commit()
    return user


def switch_active_role(user: User, role: str | None) -> User:
    """
    Set (or clear, with None / "admin") the role an admin is viewing as.

    Raises PermissionError for non-admins, ValidationError for bad roles.
    """
    if user.role != "admin":
        raise PermissionError("Admin access required")

    if role in (None, "", "admin"):
        user.active_role = None
    elif role in SWITCHABLE_ROLES:
        user.active_role = role
    else:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(SWITCHABLE_ROLES)}")

    db.session.commit()
    current_app.logger.info("User %s now viewing as %s", user.id, resolve_effective_role(user))
    return user


def find_user_by_reference(reference) -> User | None:
    """Match a local id, roster id or email against the local directory only."""
    if reference is None:
        return None
    ref = str(reference).strip()
    if not ref:
        return None

    if ref.isdigit():
        user = db.session.get(User, int(ref))
        if user is not None:
            return user

    user = User.query.filter_by(zoho_user_id=ref).first()
    if user is not None:
        return user

    return User.query.filter_by(email=ref.lower()).first()


def _user_from_roster(roster_user: RosterUser) -> User:
    email = (roster_user.email or f"{roster_user.id}@roster.invalid").lower()

    existing = User.query.filter_by(email=email).first()
    if existing is not None:
        if not existing.zoho_user_id:
            existing.zoho_user_id = roster_user.id
            db.session.commit()
        return existing

    user = User(
        email=email,
        first_name=roster_user.first_name,
        last_name=roster_user.last_name,
        role="manager",
        zoho_user_id=roster_user.id,
        annual_travel_budget=current_app.config["DEFAULT_ANNUAL_TRAVEL_BUDGET"],
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created local user %s from roster id %s", user.id, roster_user.id)
    return user


def resolve_user_reference(reference, *, label: str = "user") -> User:
    """
    Resolve a local id / roster id / email to a local User, importing from
    the roster provider when the id is only known there.

    Raises ValidationError when nobody matches.
    """
    user = find_user_by_reference(reference)
    if user is not None:
        return user

    client = get_roster_client()
    if not client.is_configured:
        raise ValidationError(f"Selected {label} not found")

    roster_user = client.find_user(str(reference).strip())
    if roster_user is None:
        raise ValidationError(f"Selected {label} not found")
    return _user_from_roster(roster_user)
