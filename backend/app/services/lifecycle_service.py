# Overview: Service-layer operations for the travel request lifecycle; encapsulates business logic and database work.

"""
TravelDesk Request Lifecycle Service

================================================================================
PURPOSE: Enforce submitted -> approved -> completed for travel requests
================================================================================

STATE MACHINE:
    submitted -> pm_approved -> operations_completed
    submitted -> pm_rejected
    submitted -> cancelled

    submitted:            Raised by a manager / PM, waiting for approval
    pm_approved:          Approved, assigned to an operations team for booking
    pm_rejected:          Terminal. Rejection reason recorded
    operations_completed: Terminal. Bookings recorded, actual cost known
    cancelled:            Terminal. Withdrawn before approval

RULES (NON-NEGOTIABLE):
1. Cannot skip states (submitted -> operations_completed is forbidden)
2. Cannot reverse states
3. Every transition records who made it and when
4. Completion cost is the sum of the booking costs

KNOWN GAP (two-phase completion):
    complete_request() commits the bookings first and marks the request
    completed second. If the second step fails the bookings stay attached
    to a request that is still pm_approved. This is logged at ERROR with
    the booking ids; nothing is rolled back automatically.
================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import TravelRequest, User, OPERATIONS_ROLES
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_travel_request,
)
from app.time_utils import utcnow, utctoday
from . import booking_service
from . import notification_service
from .cost_service import sum_costs
from .destination_service import format_destinations, suggest_operations_team
from .permission_service import PermissionDeniedError, user_has_permission
from .project_service import resolve_project_reference, get_or_create_default_project
from .user_service import resolve_effective_role, resolve_user_reference


VALID_STATUSES = {"submitted", "pm_approved", "pm_rejected", "operations_completed", "cancelled"}
TERMINAL_STATUSES = {"pm_rejected", "operations_completed", "cancelled"}

VALID_TRANSITIONS = {
    ("submitted", "pm_approved"),
    ("submitted", "pm_rejected"),
    ("submitted", "cancelled"),
    ("pm_approved", "operations_completed"),
}

SUBMIT_POLICY = ModelValidationPolicy(
    writable_fields={
        "origin",
        "destination",
        "purpose",
        "custom_purpose",
        "departure_date",
        "return_date",
        "estimated_flight_cost",
        "estimated_hotel_cost",
        "estimated_other_cost",
        "notes",
    },
    required_on_create={"origin", "purpose", "departure_date", "return_date"},
    aliases={
        "customPurpose": "custom_purpose",
        "departureDate": "departure_date",
        "returnDate": "return_date",
        "estimatedFlightCost": "estimated_flight_cost",
        "estimatedHotelCost": "estimated_hotel_cost",
        "estimatedOtherCost": "estimated_other_cost",
    },
)


class LifecycleError(ValueError):
    """
    Raised when an invalid lifecycle transition is attempted.

    This is a domain error, not a technical error. It indicates
    that the user attempted an operation that violates business rules.
    """
    pass


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Same-state "transitions" are not allowed: approving an approved
    request is an error, not a no-op.
    """
    validate_status(from_status)
    validate_status(to_status)
    return (from_status, to_status) in VALID_TRANSITIONS


def _require_transition(tx: TravelRequest, to_status: str, verb: str) -> None:
    if not can_transition(tx.status, to_status):
        allowed_from = sorted(f for f, t in VALID_TRANSITIONS if t == to_status)
        raise LifecycleError(
            f"Cannot {verb} travel request {tx.id}: "
            f"current status is '{tx.status}', must be '{' or '.join(allowed_from)}'"
        )


def get_request(request_id: int) -> TravelRequest:
    tx = db.session.get(TravelRequest, request_id)
    if tx is None:
        raise ValueError(f"Travel request {request_id} not found")
    return tx


# ================================================================================
# SUBMIT
# ================================================================================

def _pop_first(payload: dict, *keys):
    value = None
    for key in keys:
        if key in payload:
            candidate = payload.pop(key)
            if value is None:
                value = candidate
    return value


def _clean_destinations(raw) -> list[str] | None:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("destinations must be a list of strings")
    legs = []
    for leg in raw:
        if not isinstance(leg, str) or not leg.strip():
            raise ValidationError("destinations must be a list of non-empty strings")
        legs.append(leg.strip())
    return legs or None


def submit_request(payload: dict, *, requester: User) -> TravelRequest:
    """
    Create a travel request in 'submitted'.

    All field rules are checked before any roster lookup, so an invalid
    submission never reaches the external provider.

    travelerId / projectId may be local ids or roster ids; they are
    reconciled here to local ids. A sales or event trip without a project
    is filed under the matching default project.

    Raises:
        ValidationError: missing/invalid fields, unknown traveller/project
    """
    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)

    traveler_ref = _pop_first(payload, "travelerId", "traveler_id")
    project_ref = _pop_first(payload, "projectId", "project_id")
    destinations = _clean_destinations(_pop_first(payload, "destinations"))

    patch = validate_payload(model=TravelRequest, payload=payload, policy=SUBMIT_POLICY, partial=False)

    if not patch.get("destination"):
        if not destinations:
            raise ValidationError("destination or destinations is required")
        patch["destination"] = destinations[0]

    project_ref = str(project_ref).strip() if project_ref not in (None, "") else None
    enforce_rules_travel_request({**patch, "project_id": project_ref}, today=utctoday())
    if patch["purpose"] != "other":
        patch["custom_purpose"] = None

    # Reconcile references once; only local ids are stored
    traveler = requester if traveler_ref in (None, "") else resolve_user_reference(traveler_ref, label="traveler")
    if project_ref:
        project = resolve_project_reference(project_ref)
    else:
        project = get_or_create_default_project(patch["purpose"])

    tx = TravelRequest(
        **patch,
        destinations=destinations,
        requester_id=requester.id,
        traveler_id=traveler.id,
        project_id=project.id if project else None,
        status="submitted",
    )
    db.session.add(tx)
    db.session.commit()

    current_app.logger.info(
        "Travel request %s submitted by user %s for traveller %s", tx.id, requester.id, traveler.id
    )
    notification_service.notify("request_submitted", tx)
    return tx


# ================================================================================
# APPROVE / REJECT
# ================================================================================

def approve_request(
    request_id: int,
    *,
    approver: User,
    assigned_operations_team: str | None = None,
) -> TravelRequest:
    """
    Approve a submitted request (submitted -> pm_approved).

    The operations team defaults to the destination-based suggestion.
    """
    tx = get_request(request_id)
    _require_transition(tx, "pm_approved", "approve")

    team = assigned_operations_team or suggest_operations_team(format_destinations(tx))
    if team not in OPERATIONS_ROLES:
        raise ValidationError(f"assignedOperationsTeam must be one of: {', '.join(OPERATIONS_ROLES)}")

    tx.status = "pm_approved"
    tx.pm_approved_by = approver.id
    tx.pm_approved_at = utcnow()
    tx.assigned_operations_team = team

    db.session.commit()
    current_app.logger.info("Travel request %s approved by user %s, assigned to %s", tx.id, approver.id, team)
    notification_service.notify("request_approved", tx)
    return tx


def reject_request(
    request_id: int,
    *,
    approver: User,
    reason: str | None = None,
) -> TravelRequest:
    """Reject a submitted request (submitted -> pm_rejected)."""
    tx = get_request(request_id)
    _require_transition(tx, "pm_rejected", "reject")

    tx.status = "pm_rejected"
    tx.pm_approved_by = approver.id
    tx.pm_approved_at = utcnow()
    tx.pm_rejection_reason = (reason or "").strip() or None

    db.session.commit()
    current_app.logger.info("Travel request %s rejected by user %s", tx.id, approver.id)
    return tx


# ================================================================================
# COMPLETE
# ================================================================================

def _require_region(tx: TravelRequest, actor: User, enforce_region: bool) -> None:
    if not enforce_region or not tx.assigned_operations_team:
        return
    if resolve_effective_role(actor) != tx.assigned_operations_team:
        raise PermissionDeniedError(
            f"Travel request {tx.id} is assigned to {tx.assigned_operations_team}"
        )


def mark_completed(
    request_id: int,
    *,
    completed_by: User,
    total_cost: float | None = None,
) -> TravelRequest:
    """
    Second phase of completion (pm_approved -> operations_completed).

    total_cost=None sums every booking already recorded on the request.
    """
    tx = get_request(request_id)
    _require_transition(tx, "operations_completed", "complete")

    if total_cost is None:
        total_cost = sum_costs(b.cost for b in tx.bookings)

    tx.status = "operations_completed"
    tx.actual_total_cost = total_cost
    tx.operations_completed_by = completed_by.id
    tx.operations_completed_at = utcnow()
    for booking in tx.bookings:
        if booking.status == "in_progress":
            booking.status = "completed"

    db.session.commit()
    current_app.logger.info(
        "Travel request %s completed by user %s, actual cost %.2f", tx.id, completed_by.id, total_cost
    )
    notification_service.notify("booking_completed", tx)
    return tx


def complete_request(
    request_id: int,
    *,
    completed_by: User,
    bookings: list[dict] | None = None,
    enforce_region: bool = False,
) -> TravelRequest:
    """
    Record bookings, then mark the request completed.

    Booking rows missing a type or a cost are dropped. actual_total_cost
    is the sum of every booking on the request, including ones recorded
    before completion.

    Raises:
        ValueError: request not found
        LifecycleError: request is not pm_approved
        PermissionDeniedError: region enforcement is on and the actor is
            not the assigned team
    """
    tx = get_request(request_id)
    _require_transition(tx, "operations_completed", "complete")
    _require_region(tx, completed_by, enforce_region)

    if bookings is None:
        return mark_completed(tx.id, completed_by=completed_by)

    # Phase 1: commits on its own
    created = booking_service.create_completion_bookings(tx, bookings, booked_by=completed_by)
    booking_ids = [b.id for b in created]

    # Phase 2: the total covers these and any bookings added beforehand
    try:
        return mark_completed(tx.id, completed_by=completed_by)
    except Exception:
        db.session.rollback()
        current_app.logger.error(
            "Travel request %s: %d booking(s) %s created but completion failed; "
            "request left in pm_approved",
            tx.id,
            len(booking_ids),
            booking_ids,
        )
        raise


# ================================================================================
# CANCEL
# ================================================================================

def cancel_request(request_id: int, *, actor: User) -> TravelRequest:
    """
    Withdraw a submitted request (submitted -> cancelled).

    The requester may cancel their own request; anyone else needs
    CANCEL_ANY_REQUEST.
    """
    tx = get_request(request_id)
    if tx.requester_id != actor.id and not user_has_permission(actor, "CANCEL_ANY_REQUEST"):
        raise PermissionDeniedError("Only the requester can cancel this travel request")
    _require_transition(tx, "cancelled", "cancel")

    tx.status = "cancelled"
    tx.cancelled_by = actor.id
    tx.cancelled_at = utcnow()

    db.session.commit()
    current_app.logger.info("Travel request %s cancelled by user %s", tx.id, actor.id)
    return tx


# ================================================================================
# QUERIES
# ================================================================================

def list_requests_for_user(
    user: User,
    *,
    my_requests_only: bool = False,
    needs_approval: bool = False,
    status: str | None = None,
    project_id: int | None = None,
    limit: int = 500,
) -> list[TravelRequest]:
    """
    Role-scoped request listing.

    - manager:     own requests only
    - pm / admin:  everything; own only with my_requests_only; submitted
                   only with needs_approval
    - operations:  requests assigned to the team; pm_approved by default,
                   finished ones with status="completed-rejected"
    An explicit status (other than "completed-rejected") always applies.
    """
    role = resolve_effective_role(user)
    q = TravelRequest.query

    if role == "manager":
        q = q.filter(TravelRequest.requester_id == user.id)
    elif role in ("pm", "admin"):
        if my_requests_only:
            q = q.filter(TravelRequest.requester_id == user.id)
        elif needs_approval:
            q = q.filter(TravelRequest.status == "submitted")
    elif role in OPERATIONS_ROLES:
        q = q.filter(TravelRequest.assigned_operations_team == role)
        if status != "completed-rejected" and not status:
            q = q.filter(TravelRequest.status == "pm_approved")
    else:
        return []

    if status == "completed-rejected":
        q = q.filter(TravelRequest.status.in_(("operations_completed", "pm_rejected")))
    elif status:
        validate_status(status)
        q = q.filter(TravelRequest.status == status)

    if project_id is not None:
        q = q.filter(TravelRequest.project_id == project_id)

    q = q.order_by(TravelRequest.created_at.desc(), TravelRequest.id.desc())
    return q.limit(limit).all()


def get_request_for_user(request_id: int, user: User) -> TravelRequest:
    """Managers may only open requests they raised."""
    tx = get_request(request_id)
    if resolve_effective_role(user) == "manager" and tx.requester_id != user.id:
        raise PermissionDeniedError("Access denied")
    return tx


def get_requests_by_status(status: str, *, limit: int = 500) -> list[TravelRequest]:
    validate_status(status)
    return (
        TravelRequest.query.filter_by(status=status)
        .order_by(TravelRequest.created_at.desc(), TravelRequest.id.desc())
        .limit(limit)
        .all()
    )
