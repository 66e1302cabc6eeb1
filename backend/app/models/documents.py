from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, to_iso_date


DOCUMENT_TYPES = ("passport", "visa", "emirates_id", "iqama")


class EmployeeDocument(db.Model):
    """
    Identity / travel document held by an employee.

    Expiry status is derived, never stored (document_service.classify_expiry).
    document_data carries the type-specific extras captured by the passport
    and visa forms (nationality, entry type, linked passport id, ...).
    """
    __tablename__ = "employee_documents"
    __table_args__ = (
        db.Index("ix_employee_documents_user", "user_id"),
        db.Index("ix_employee_documents_expiry", "expiry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    document_type = db.Column(db.String(32), nullable=False)
    document_number = db.Column(db.String(128), nullable=False)
    issuing_country = db.Column(db.String(128), nullable=False)
    issue_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    attachment_url = db.Column(db.String(512), nullable=True)
    document_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("documents", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "document_type": self.document_type,
            "document_number": self.document_number,
            "issuing_country": self.issuing_country,
            "issue_date": to_iso_date(self.issue_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "notes": self.notes,
            "attachment_url": self.attachment_url,
            "document_data": self.document_data,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
