from __future__ import annotations
from datetime import date, datetime
from app.time_utils import parse_iso_datetime, as_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime, JSON
from sqlalchemy.orm import DeclarativeMeta

from .models import TRAVEL_PURPOSES, BOOKING_TYPES, DOCUMENT_TYPES


# Maximum amount: 99,999,999.99 (NUMERIC(10,2))
MAX_AMOUNT = 99_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""


def optional_json_object(payload: Any) -> dict:
    """A missing body reads as {}; anything but a JSON object is rejected."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: incoming camelCase keys mapped onto column keys
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    aliases: dict[str, str] | None = None


def parse_amount(value: Any, field: str = "amount") -> float | None:
    """
    Parse a monetary amount sent as a number or a decimal string.

    None / "" -> None. Always returns a float rounded to cents.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            amount = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,.2f}")
    return round(amount, 2)


def parse_date_value(value: Any, field: str) -> datetime | None:
    """Accept ISO-8601 dates/datetimes (or date objects); return UTC-naive datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        return dt
    raise ValidationError(f"{field} must be a date")


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    # Money columns: numbers or decimal strings
    if isinstance(coltype, Numeric):
        return parse_amount(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return parse_date_value(value, col.key)

    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    aliases = policy.aliases or {}
    payload = {aliases.get(k, k): v for k, v in payload.items()}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # Blank strings on nullable columns mean "not set"
        if isinstance(raw, str) and raw.strip() == "" and col.nullable:
            raw = None

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_travel_request(patch: dict, *, today: date) -> None:
    """
    Submission rules that are not captured by column metadata:
    - purpose must be known; delivery requires a project, other requires
      a custom purpose
    - return strictly after departure; departure not in the past
    - estimates cannot be negative
    """
    purpose = patch.get("purpose")
    if purpose not in TRAVEL_PURPOSES:
        raise ValidationError(f"purpose must be one of: {', '.join(TRAVEL_PURPOSES)}")

    if purpose == "delivery" and not patch.get("project_id"):
        raise ValidationError("purpose 'delivery' requires a project (projectId)")

    if purpose == "other" and not (patch.get("custom_purpose") or "").strip():
        raise ValidationError("purpose 'other' requires a customPurpose")

    departure = patch.get("departure_date")
    ret = patch.get("return_date")
    if departure is None or ret is None:
        raise ValidationError("departureDate and returnDate are required")
    if ret <= departure:
        raise ValidationError("returnDate must be after departureDate")
    if as_date(departure) < today:
        raise ValidationError("departureDate cannot be in the past")

    for key in ("estimated_flight_cost", "estimated_hotel_cost", "estimated_other_cost"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def enforce_rules_booking(patch: dict) -> None:
    if patch.get("type") not in BOOKING_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(BOOKING_TYPES)}")
    if patch.get("cost") is not None and patch["cost"] < 0:
        raise ValidationError("cost must be >= 0")
    if patch.get("per_diem_rate") is not None and patch["type"] != "per_diem":
        raise ValidationError("perDiemRate is only allowed for per_diem bookings")


def enforce_rules_document(patch: dict) -> None:
    if "document_type" in patch and patch["document_type"] not in DOCUMENT_TYPES:
        raise ValidationError(f"documentType must be one of: {', '.join(DOCUMENT_TYPES)}")
    issue = patch.get("issue_date")
    expiry = patch.get("expiry_date")
    if issue is not None and expiry is not None and as_date(expiry) <= as_date(issue):
        raise ValidationError("expiryDate must be after issueDate")
