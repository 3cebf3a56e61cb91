from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal

from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money_utils import MAX_AMOUNT, round2, to_decimal
from .time_utils import parse_iso_date, parse_iso_datetime


# =============================================================================
# ERROR KINDS
# =============================================================================

class DomainError(Exception):
    """Base for rejected commands. Carries the HTTP status and a stable code."""
    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.details}


class ValidationError(DomainError, ValueError):
    """400-level input problem. Always names the offending field when known."""
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(DomainError):
    """Referenced entity does not exist."""
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(DomainError):
    """409-level business rule conflict (e.g., deleting a record still referenced)."""
    status_code = 409
    code = "CONFLICT"


class DuplicateError(ConflictError):
    """Uniqueness conflict on a natural key."""
    code = "DUPLICATE"

    def __init__(self, message: str, field: str):
        super().__init__(message, {"field": field})
        self.field = field


class InvalidTransitionError(DomainError):
    """Illegal lifecycle move; reports the current state and the allowed next states."""
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str, allowed: Sequence[str]):
        allowed = [str(s) for s in allowed]
        listed = ", ".join(allowed) if allowed else "None (terminal state)"
        super().__init__(
            f"Invalid status transition from {current} to {requested}. Valid transitions: {listed}",
            {
                "current_status": str(current),
                "requested_status": str(requested),
                "valid_transitions": allowed,
            },
        )
        self.current = str(current)
        self.requested = str(requested)
        self.allowed = allowed


class InternalError(DomainError):
    """Unexpected data-access failure. Never exposes driver detail to callers."""
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": "Internal server error", "code": self.code}


# =============================================================================
# PAYLOAD VALIDATION
# =============================================================================

@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - immutable_fields: accepted on create, rejected on update
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    immutable_fields: set[str] | None = None


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
                raise ValidationError(f"{col.key} must be an integer", col.key)
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)", col.key)
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)", col.key)
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer", col.key)
        # Floats are accepted only when integral (JSON 5.0)
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be an integer, not a decimal", col.key)
        # Other types
        raise ValidationError(f"{col.key} must be an integer", col.key)

    # Money
    if isinstance(coltype, Numeric):
        try:
            amount = to_decimal(value)
        except ValueError:
            raise ValidationError(f"{col.key} must be a number", col.key)
        if abs(amount) > MAX_AMOUNT:
            raise ValidationError(f"{col.key} cannot exceed {MAX_AMOUNT}", col.key)
        return amount

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", col.key)
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", col.key)
            return dt
        raise ValidationError(f"{col.key} must be a datetime", col.key)

    # Calendar dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a valid ISO date", col.key)
            if d is None:
                raise ValidationError(f"{col.key} must be a valid ISO date", col.key)
            return d
        raise ValidationError(f"{col.key} must be a valid ISO date", col.key)

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
    - immutable_fields (if partial=True)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(f"{missing[0]} is required", missing[0])

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", k)
        if partial and policy.immutable_fields and k in policy.immutable_fields:
            raise ValidationError(f"{k} cannot be changed after creation", k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", k)

        patch[k] = val

    return patch


# =============================================================================
# FIELD RULES
# =============================================================================

def require_positive_int(value: Any, field: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer", field)
    return value


def require_positive_amount(value: Any, field: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number", field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0", field)
    return round2(amount)


def enforce_rules_batch(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Date ordering is checked by the inventory service against effective values.
    """
    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be a non-negative integer", "quantity")

    for field in ("mrp", "dealer_price"):
        if patch.get(field) is not None:
            if patch[field] <= 0:
                raise ValidationError(f"{field} must be greater than 0", field)
            patch[field] = round2(patch[field])
