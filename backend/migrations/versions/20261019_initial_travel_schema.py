"""Initial travel desk schema

Revision ID: 20261019_travel_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_travel_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("active_role", sa.String(length=32), nullable=True),
        sa.Column("zoho_user_id", sa.String(length=64), nullable=True),
        sa.Column("annual_travel_budget", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_zoho_user_id", "users", ["zoho_user_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("zoho_project_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("budget", sa.Numeric(12, 2), nullable=True),
        sa.Column("travel_budget", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("zoho_project_id", name="uq_projects_zoho_project_id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "travel_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("traveler_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("origin", sa.String(length=255), nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("destinations", sa.JSON(), nullable=True),
        sa.Column("purpose", sa.String(length=32), nullable=False),
        sa.Column("custom_purpose", sa.String(length=255), nullable=True),
        sa.Column("departure_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("return_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("estimated_flight_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_hotel_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_other_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("actual_total_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="submitted"),
        sa.Column("pm_approved_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("pm_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pm_rejection_reason", sa.Text(), nullable=True),
        sa.Column("assigned_operations_team", sa.String(length=32), nullable=True),
        sa.Column("operations_completed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("operations_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_travel_requests_status", "travel_requests", ["status"])
    op.create_index("ix_travel_requests_requester", "travel_requests", ["requester_id"])
    op.create_index("ix_travel_requests_traveler", "travel_requests", ["traveler_id"])
    op.create_index("ix_travel_requests_team_status", "travel_requests", ["assigned_operations_team", "status"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("travel_requests.id"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("provider", sa.String(length=255), nullable=True),
        sa.Column("booking_reference", sa.String(length=255), nullable=True),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("per_diem_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("booked_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bookings_request", "bookings", ["request_id"])

    op.create_table(
        "employee_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("document_number", sa.String(length=128), nullable=False),
        sa.Column("issuing_country", sa.String(length=128), nullable=False),
        sa.Column("issue_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("attachment_url", sa.String(length=512), nullable=True),
        sa.Column("document_data", sa.JSON(), nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_employee_documents_user", "employee_documents", ["user_id"])
    op.create_index("ix_employee_documents_expiry", "employee_documents", ["expiry_date"])

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("resource", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    for column in ("user_id", "event_type", "success", "occurred_at"):
        op.create_index(f"ix_security_events_{column}", "security_events", [column])
    op.create_index("ix_security_events_user_type", "security_events", ["user_id", "event_type"])


def downgrade():
    op.drop_table("security_events")
    op.drop_index("ix_employee_documents_expiry", table_name="employee_documents")
    op.drop_index("ix_employee_documents_user", table_name="employee_documents")
    op.drop_table("employee_documents")
    op.drop_index("ix_bookings_request", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_travel_requests_team_status", table_name="travel_requests")
    op.drop_index("ix_travel_requests_traveler", table_name="travel_requests")
    op.drop_index("ix_travel_requests_requester", table_name="travel_requests")
    op.drop_index("ix_travel_requests_status", table_name="travel_requests")
    op.drop_table("travel_requests")
    op.drop_table("projects")
    op.drop_index("ix_users_zoho_user_id", table_name="users")
    op.drop_table("users")
