from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


REQUEST_STATUSES = ("submitted", "pm_approved", "pm_rejected", "operations_completed", "cancelled")
TRAVEL_PURPOSES = ("delivery", "sales", "event", "other")
BOOKING_TYPES = ("flight", "hotel", "car_rental", "per_diem", "other")
BOOKING_STATUSES = ("pending", "in_progress", "completed", "cancelled")


class TravelRequest(db.Model):
    """
    A single trip from submission to operations completion.

    STATE MACHINE (see lifecycle_service):
        submitted -> pm_approved -> operations_completed
        submitted -> pm_rejected
        submitted -> cancelled

    destination is the legacy single-destination field and is always set
    (to the first leg for multi-leg trips). destinations holds the ordered
    legs when the trip has more than one stop.
    """
    __tablename__ = "travel_requests"
    __table_args__ = (
        db.Index("ix_travel_requests_status", "status"),
        db.Index("ix_travel_requests_requester", "requester_id"),
        db.Index("ix_travel_requests_traveler", "traveler_id"),
        db.Index("ix_travel_requests_team_status", "assigned_operations_team", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    traveler_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=True)

    origin = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=False)
    destinations = db.Column(db.JSON, nullable=True)

    purpose = db.Column(db.String(32), nullable=False)
    custom_purpose = db.Column(db.String(255), nullable=True)

    departure_date = db.Column(db.DateTime(timezone=True), nullable=False)
    return_date = db.Column(db.DateTime(timezone=True), nullable=False)

    estimated_flight_cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    estimated_hotel_cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    estimated_other_cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    # Set only at completion
    actual_total_cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="submitted")

    pm_approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    pm_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    pm_rejection_reason = db.Column(db.Text, nullable=True)

    assigned_operations_team = db.Column(db.String(32), nullable=True)
    operations_completed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    operations_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    requester = db.relationship("User", foreign_keys=[requester_id])
    traveler = db.relationship("User", foreign_keys=[traveler_id])
    pm_approver = db.relationship("User", foreign_keys=[pm_approved_by])
    operations_completer = db.relationship("User", foreign_keys=[operations_completed_by])
    project = db.relationship("Project", backref=db.backref("travel_requests", lazy=True))

    def to_dict(self, *, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "requester_id": self.requester_id,
            "traveler_id": self.traveler_id,
            "project_id": self.project_id,
            "origin": self.origin,
            "destination": self.destination,
            "destinations": list(self.destinations) if self.destinations else None,
            "purpose": self.purpose,
            "custom_purpose": self.custom_purpose,
            "departure_date": to_utc_z(self.departure_date),
            "return_date": to_utc_z(self.return_date),
            "estimated_flight_cost": self.estimated_flight_cost,
            "estimated_hotel_cost": self.estimated_hotel_cost,
            "estimated_other_cost": self.estimated_other_cost,
            "actual_total_cost": self.actual_total_cost,
            "notes": self.notes,
            "status": self.status,
            "pm_approved_by": self.pm_approved_by,
            "pm_approved_at": to_utc_z(self.pm_approved_at),
            "pm_rejection_reason": self.pm_rejection_reason,
            "assigned_operations_team": self.assigned_operations_team,
            "operations_completed_by": self.operations_completed_by,
            "operations_completed_at": to_utc_z(self.operations_completed_at),
            "cancelled_by": self.cancelled_by,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_details:
            data["requester"] = self.requester.to_dict() if self.requester else None
            data["traveler"] = self.traveler.to_dict() if self.traveler else None
            data["project"] = self.project.to_dict() if self.project else None
            data["pm_approver"] = self.pm_approver.to_dict() if self.pm_approver else None
            data["bookings"] = [b.to_dict() for b in self.bookings]
        return data


class Booking(db.Model):
    """
    Operational booking recorded against an approved request.

    per_diem_rate is only meaningful for type=per_diem; cost is then
    derived from the request dates (cost_service.per_diem_cost).
    """
    __tablename__ = "bookings"
    __table_args__ = (
        db.Index("ix_bookings_request", "request_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("travel_requests.id"), nullable=False)

    type = db.Column(db.String(32), nullable=False)
    provider = db.Column(db.String(255), nullable=True)
    booking_reference = db.Column(db.String(255), nullable=True)
    cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    per_diem_rate = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    status = db.Column(db.String(32), nullable=False, default="pending")

    booked_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    booked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    request = db.relationship("TravelRequest", backref=db.backref("bookings", lazy=True, order_by="Booking.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "type": self.type,
            "provider": self.provider,
            "booking_reference": self.booking_reference,
            "cost": self.cost,
            "per_diem_rate": self.per_diem_rate,
            "status": self.status,
            "booked_by": self.booked_by,
            "booked_at": to_utc_z(self.booked_at),
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }
