# Overview: Service-layer operations for employee documents (passports, visas, IDs) and expiry tracking.

"""
Employee Document Service

EXPIRY CLASSIFICATION (derived, never stored):
    days_until_expiry = expiry_date - today (calendar days)
    expired:        days_until_expiry <= 0
    expiring_soon:  0 < days_until_expiry <= warning_days (30)
    valid:          otherwise

Passports and visas are plain EmployeeDocument rows; the fields only the
passport / visa forms capture live in document_data. A visa must point at
a passport held by the same employee.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import EmployeeDocument, User
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_document,
    parse_amount,
    parse_date_value,
)
from app.time_utils import as_date, utctoday
from .user_service import find_user_by_reference, resolve_user_reference


EXPIRED = "expired"
EXPIRING_SOON = "expiring_soon"
VALID = "valid"

DEFAULT_WARNING_DAYS = 30

PASSPORT_GENDERS = ("Male", "Female", "Other")
VISA_ENTRY_TYPES = ("Single Entry", "Multiple Entry", "Transit")

DOCUMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "document_type",
        "document_number",
        "issuing_country",
        "issue_date",
        "expiry_date",
        "notes",
        "attachment_url",
        "document_data",
    },
    required_on_create={"document_type", "document_number", "issuing_country", "issue_date", "expiry_date"},
    aliases={
        "documentType": "document_type",
        "documentNumber": "document_number",
        "issuingCountry": "issuing_country",
        "countryCode": "issuing_country",
        "issueDate": "issue_date",
        "expiryDate": "expiry_date",
        "attachmentUrl": "attachment_url",
        "documentData": "document_data",
    },
)


@dataclass(frozen=True)
class ExpiryStatus:
    status: str
    days_until_expiry: int

    def to_dict(self) -> dict:
        return {"status": self.status, "days_until_expiry": self.days_until_expiry}


def classify_expiry(expiry_date, today: date, *, warning_days: int = DEFAULT_WARNING_DAYS) -> ExpiryStatus:
    days = (as_date(expiry_date) - today).days
    if days <= 0:
        return ExpiryStatus(EXPIRED, days)
    if days <= warning_days:
        return ExpiryStatus(EXPIRING_SOON, days)
    return ExpiryStatus(VALID, days)


def _warning_days() -> int:
    return int(current_app.config.get("DOCUMENT_EXPIRY_WARNING_DAYS", DEFAULT_WARNING_DAYS))


def document_to_dict(doc: EmployeeDocument, *, today: date | None = None) -> dict:
    """Serialized document with holder details and the derived expiry status."""
    data = doc.to_dict()
    data.update(classify_expiry(doc.expiry_date, today or utctoday(), warning_days=_warning_days()).to_dict())
    if doc.user is not None:
        data["user"] = {
            "id": doc.user.id,
            "first_name": doc.user.first_name,
            "last_name": doc.user.last_name,
            "email": doc.user.email,
        }
    return data


def summarize(documents, *, today: date | None = None) -> dict:
    today = today or utctoday()
    warning_days = _warning_days()
    counts = {"total": 0, EXPIRED: 0, EXPIRING_SOON: 0, VALID: 0}
    for doc in documents:
        counts["total"] += 1
        counts[classify_expiry(doc.expiry_date, today, warning_days=warning_days).status] += 1
    return counts


# ================================================================================
# Queries
# ================================================================================

def get_document(document_id: int) -> EmployeeDocument:
    doc = db.session.get(EmployeeDocument, document_id)
    if doc is None:
        raise ValueError(f"Document {document_id} not found")
    return doc


def list_documents(*, employee: str | None = None, document_type: str | None = None) -> list[EmployeeDocument]:
    """
    All documents, optionally for one employee.

    employee may be a local id, roster id or email; an unknown employee
    yields an empty list rather than an error.
    """
    q = EmployeeDocument.query
    if employee:
        holder = find_user_by_reference(employee)
        if holder is None:
            return []
        q = q.filter_by(user_id=holder.id)
    if document_type:
        q = q.filter_by(document_type=document_type)
    return q.order_by(EmployeeDocument.expiry_date.asc(), EmployeeDocument.id.asc()).all()


def expiring_documents(*, days: int | None = None, today: date | None = None) -> list[EmployeeDocument]:
    """Documents already expired or expiring within `days` (default: the warning window)."""
    today = today or utctoday()
    days = _warning_days() if days is None else days
    if days < 0:
        raise ValidationError("days must be >= 0")
    return [
        doc for doc in EmployeeDocument.query.order_by(EmployeeDocument.expiry_date.asc()).all()
        if (as_date(doc.expiry_date) - today).days <= days
    ]


# ================================================================================
# Generic CRUD
# ================================================================================

def _holder(payload: dict) -> User:
    ref = payload.pop("userId", None)
    ref = payload.pop("user_id", ref)
    if ref in (None, ""):
        raise ValidationError("Missing required fields: userId")
    return resolve_user_reference(ref, label="employee")


def create_document(payload: dict) -> EmployeeDocument:
    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    holder = _holder(payload)

    patch = validate_payload(model=EmployeeDocument, payload=payload, policy=DOCUMENT_POLICY, partial=False)
    enforce_rules_document(patch)

    doc = EmployeeDocument(**patch, user_id=holder.id)
    db.session.add(doc)
    db.session.commit()
    current_app.logger.info("Document %s (%s) created for user %s", doc.id, doc.document_type, holder.id)
    return doc


def update_document(document_id: int, payload: dict) -> EmployeeDocument:
    doc = get_document(document_id)
    patch = validate_payload(model=EmployeeDocument, payload=payload, policy=DOCUMENT_POLICY, partial=True)
    enforce_rules_document({
        "issue_date": doc.issue_date,
        "expiry_date": doc.expiry_date,
        **patch,
    })

    for key, value in patch.items():
        setattr(doc, key, value)
    db.session.commit()
    return doc


def delete_document(document_id: int) -> None:
    doc = get_document(document_id)
    db.session.delete(doc)
    db.session.commit()
    current_app.logger.info("Document %s deleted", document_id)


# ================================================================================
# Passports / visas
# ================================================================================

def _required_text(payload: dict, fields: dict[str, str]) -> dict[str, str]:
    """fields maps payload key -> label; returns stripped values."""
    missing = []
    values = {}
    for key, label in fields.items():
        value = payload.get(key)
        if value is None or not str(value).strip():
            missing.append(label)
        else:
            values[key] = str(value).strip()
    if missing:
        raise ValidationError(f"{missing[0]} is required")
    return values


def _optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def _document_dates(payload: dict) -> tuple:
    issue = parse_date_value(payload.get("issueDate"), "issueDate")
    expiry = parse_date_value(payload.get("expiryDate"), "expiryDate")
    enforce_rules_document({"issue_date": issue, "expiry_date": expiry})
    return issue, expiry


def list_passports() -> list[EmployeeDocument]:
    return list_documents(document_type="passport")


def list_visas() -> list[EmployeeDocument]:
    return list_documents(document_type="visa")


def create_passport(payload: dict) -> EmployeeDocument:
    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    values = _required_text(payload, {
        "userId": "Employee",
        "passportNumber": "Passport number",
        "fullName": "Full name",
        "nationality": "Nationality",
        "dateOfBirth": "Date of birth",
        "placeOfBirth": "Place of birth",
        "gender": "Gender",
        "issueDate": "Issue date",
        "expiryDate": "Expiry date",
        "issuingAuthority": "Issuing authority",
        "issuingCountry": "Issuing country",
    })
    if values["gender"] not in PASSPORT_GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(PASSPORT_GENDERS)}")
    issue, expiry = _document_dates(payload)
    parse_date_value(values["dateOfBirth"], "dateOfBirth")

    holder = find_user_by_reference(values["userId"])
    if holder is None:
        raise ValidationError("Selected employee not found")

    doc = EmployeeDocument(
        user_id=holder.id,
        document_type="passport",
        document_number=values["passportNumber"],
        issuing_country=values["issuingCountry"],
        issue_date=issue,
        expiry_date=expiry,
        notes=_optional_text(payload, "notes"),
        document_data={
            "fullName": values["fullName"],
            "nationality": values["nationality"],
            "dateOfBirth": values["dateOfBirth"],
            "placeOfBirth": values["placeOfBirth"],
            "gender": values["gender"],
            "issuingAuthority": values["issuingAuthority"],
            "personalNumber": _optional_text(payload, "personalNumber"),
        },
    )
    db.session.add(doc)
    db.session.commit()
    current_app.logger.info("Passport %s created for user %s", doc.id, holder.id)
    return doc


def create_visa(payload: dict) -> EmployeeDocument:
    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    values = _required_text(payload, {
        "userId": "Employee",
        "passportId": "Passport",
        "visaNumber": "Visa number",
        "visaType": "Visa type",
        "issuingCountry": "Issuing country",
        "destinationCountry": "Destination country",
        "issueDate": "Issue date",
        "expiryDate": "Expiry date",
        "entryType": "Entry type",
    })
    if values["entryType"] not in VISA_ENTRY_TYPES:
        raise ValidationError(f"entryType must be one of: {', '.join(VISA_ENTRY_TYPES)}")
    issue, expiry = _document_dates(payload)

    fee_amount = parse_amount(payload.get("feeAmount"), "feeAmount")
    if fee_amount is not None and fee_amount < 0:
        raise ValidationError("feeAmount must be >= 0")
    for key in ("applicationDate", "approvalDate"):
        parse_date_value(payload.get(key) or None, key)

    holder = find_user_by_reference(values["userId"])
    if holder is None:
        raise ValidationError("Selected employee not found")

    passport = None
    if values["passportId"].isdigit():
        passport = db.session.get(EmployeeDocument, int(values["passportId"]))
    if passport is None or passport.document_type != "passport" or passport.user_id != holder.id:
        raise ValidationError("Selected passport not found")

    doc = EmployeeDocument(
        user_id=holder.id,
        document_type="visa",
        document_number=values["visaNumber"],
        issuing_country=values["issuingCountry"],
        issue_date=issue,
        expiry_date=expiry,
        notes=_optional_text(payload, "notes"),
        document_data={
            "passportId": passport.id,
            "visaType": values["visaType"],
            "destinationCountry": values["destinationCountry"],
            "entryType": values["entryType"],
            "duration": _optional_text(payload, "duration"),
            "issuingConsulate": _optional_text(payload, "issuingConsulate"),
            "applicationDate": _optional_text(payload, "applicationDate"),
            "approvalDate": _optional_text(payload, "approvalDate"),
            "feeAmount": fee_amount,
            "feeCurrency": _optional_text(payload, "feeCurrency") or "USD",
        },
    )
    db.session.add(doc)
    db.session.commit()
    current_app.logger.info("Visa %s created for user %s (passport %s)", doc.id, holder.id, passport.id)
    return doc
