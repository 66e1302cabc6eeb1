# Overview: Service-layer operations for bookings recorded against approved travel requests.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Booking, TravelRequest, User
from ..validation import ModelValidationPolicy, ValidationError, validate_payload, enforce_rules_booking
from app.time_utils import utcnow
from .cost_service import per_diem_cost


BOOKING_POLICY = ModelValidationPolicy(
    writable_fields={"type", "provider", "booking_reference", "cost", "per_diem_rate", "details"},
    required_on_create={"type"},
    aliases={
        "bookingReference": "booking_reference",
        "perDiemRate": "per_diem_rate",
    },
)


def _clean_booking(tx: TravelRequest, payload: dict) -> dict:
    patch = validate_payload(model=Booking, payload=payload, policy=BOOKING_POLICY, partial=False)
    enforce_rules_booking(patch)

    if patch["type"] == "per_diem" and patch.get("per_diem_rate") is not None:
        # Rate wins over a hand-entered cost; a non-positive rate leaves cost unset
        patch["cost"] = per_diem_cost(patch["per_diem_rate"], tx.departure_date, tx.return_date)
    return patch


def _is_complete_row(row) -> bool:
    if not isinstance(row, dict) or not row.get("type"):
        return False
    if row.get("cost") not in (None, ""):
        return True
    return row.get("type") == "per_diem" and row.get("perDiemRate", row.get("per_diem_rate")) not in (None, "")


def list_bookings(request_id: int | None = None) -> list[Booking]:
    q = Booking.query
    if request_id is not None:
        q = q.filter_by(request_id=request_id)
    return q.order_by(Booking.id.asc()).all()


def create_booking(request_id: int, payload: dict, *, booked_by: User) -> Booking:
    """
    Record one booking against a pm_approved request.

    The booking starts in_progress; completing the request moves it to
    completed.
    """
    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    tx = db.session.get(TravelRequest, request_id)
    if tx is None:
        raise ValueError(f"Travel request {request_id} not found")
    if tx.status != "pm_approved":
        raise ValidationError(f"Bookings can only be added to approved requests (status is '{tx.status}')")

    patch = _clean_booking(tx, payload)
    booking = Booking(
        **patch,
        request_id=tx.id,
        status="in_progress",
        booked_by=booked_by.id,
        booked_at=utcnow(),
    )
    db.session.add(booking)
    db.session.commit()

    current_app.logger.info("Booking %s (%s) added to travel request %s", booking.id, booking.type, tx.id)
    return booking


def create_completion_bookings(tx: TravelRequest, rows: list, *, booked_by: User) -> list[Booking]:
    """
    Phase one of completion: store the booking rows sent with the
    completion call.

    Rows without a type, or without a cost (a per-diem rate counts), are
    dropped. A per-diem row whose rate yields no cost is dropped as well.
    Every kept row is validated before anything is written.
    """
    if not isinstance(rows, (list, tuple)):
        raise ValidationError("bookings must be a list")

    patches = []
    for row in rows:
        if not _is_complete_row(row):
            continue
        patch = _clean_booking(tx, row)
        if patch.get("cost") is None:
            continue
        patches.append(patch)

    dropped = len(rows) - len(patches)
    if dropped:
        current_app.logger.info("Travel request %s: dropped %d incomplete booking row(s)", tx.id, dropped)

    now = utcnow()
    created = [
        Booking(**patch, request_id=tx.id, status="in_progress", booked_by=booked_by.id, booked_at=now)
        for patch in patches
    ]
    db.session.add_all(created)
    db.session.commit()
    return created
