from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


USER_ROLES = ("manager", "pm", "operations_ksa", "operations_uae", "admin")
OPERATIONS_ROLES = ("operations_ksa", "operations_uae")


class User(db.Model):
    """
    Local user directory.

    Users are either created by an admin or pulled in from the external
    roster provider (zoho_user_id set) the first time they are referenced
    as a traveller or document holder.

    WHY active_role: admins may view the app as another role. The stored
    role never changes when they do; see user_service.resolve_effective_role.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_zoho_user_id", "zoho_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False, default="")

    role = db.Column(db.String(32), nullable=False, default="manager")
    # Admin-only impersonation target; ignored for every other role
    active_role = db.Column(db.String(32), nullable=True)

    zoho_user_id = db.Column(db.String(64), nullable=True)
    annual_travel_budget = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True, default=15000)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "active_role": self.active_role,
            "zoho_user_id": self.zoho_user_id,
            "annual_travel_budget": self.annual_travel_budget,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Project(db.Model):
    """
    Projects mirrored from the external roster provider.

    zoho_project_id is the provider's id. Travel requests store the local
    id; reporting still matches either id for rows written before
    reconciliation at submission time existed.
    """
    __tablename__ = "projects"
    __table_args__ = (
        db.UniqueConstraint("zoho_project_id", name="uq_projects_zoho_project_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    zoho_project_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    budget = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    travel_budget = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    status = db.Column(db.String(32), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "zoho_project_id": self.zoho_project_id,
            "name": self.name,
            "description": self.description,
            "budget": self.budget,
            "travel_budget": self.travel_budget,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
