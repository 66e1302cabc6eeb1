# Overview: Maps request and booking status strings to display badges.

"""
Status classification for dashboards.

Every known status maps to a label and a severity tier. Unknown values
are passed through with the "unknown" tier so a status added upstream
never breaks a listing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Tier(str, Enum):
    NEUTRAL = "neutral"
    WARNING = "warning"
    SUCCESS = "success"
    DANGER = "danger"
    UNKNOWN = "unknown"


class RequestStatus(str, Enum):
    SUBMITTED = "submitted"
    PM_APPROVED = "pm_approved"
    PM_REJECTED = "pm_rejected"
    OPERATIONS_COMPLETED = "operations_completed"
    CANCELLED = "cancelled"


class BookingStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StatusBadge:
    status: str
    label: str
    tier: Tier

    def to_dict(self) -> dict:
        return {"status": self.status, "label": self.label, "tier": self.tier.value}


_REQUEST_BADGES: dict[RequestStatus, tuple[str, Tier]] = {
    RequestStatus.SUBMITTED: ("Pending Approval", Tier.WARNING),
    RequestStatus.PM_APPROVED: ("Approved", Tier.SUCCESS),
    RequestStatus.PM_REJECTED: ("Rejected", Tier.DANGER),
    RequestStatus.OPERATIONS_COMPLETED: ("Completed", Tier.SUCCESS),
    RequestStatus.CANCELLED: ("Cancelled", Tier.NEUTRAL),
}

# Operations teams read pm_approved as work in flight
_OPERATIONS_OVERRIDES: dict[RequestStatus, tuple[str, Tier]] = {
    RequestStatus.PM_APPROVED: ("Booking in Progress", Tier.WARNING),
}

_BOOKING_BADGES: dict[BookingStatus, tuple[str, Tier]] = {
    BookingStatus.PENDING: ("Pending", Tier.WARNING),
    BookingStatus.IN_PROGRESS: ("In Progress", Tier.NEUTRAL),
    BookingStatus.COMPLETED: ("Completed", Tier.SUCCESS),
    BookingStatus.CANCELLED: ("Cancelled", Tier.DANGER),
}

def _unknown(status) -> StatusBadge:
    raw = "" if status is None else str(status)
    return StatusBadge(status=raw, label=raw, tier=Tier.UNKNOWN)


def classify_request_status(status: str | None, *, audience: str | None = None) -> StatusBadge:
    """
    Badge for a travel request status.

    audience="operations" swaps in the operations wording for approved
    requests. Unrecognized statuses fall back to the raw string.
    """
    try:
        key = RequestStatus(status)
    except ValueError:
        return _unknown(status)

    if audience == "operations" and key in _OPERATIONS_OVERRIDES:
        label, tier = _OPERATIONS_OVERRIDES[key]
    else:
        label, tier = _REQUEST_BADGES[key]
    return StatusBadge(status=key.value, label=label, tier=tier)


def classify_booking_status(status: str | None) -> StatusBadge:
    try:
        key = BookingStatus(status)
    except ValueError:
        return _unknown(status)
    label, tier = _BOOKING_BADGES[key]
    return StatusBadge(status=key.value, label=label, tier=tier)
