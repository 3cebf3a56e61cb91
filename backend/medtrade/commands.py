# Overview: Typed command objects built from JSON bodies at the API boundary.

"""
Each write operation receives exactly one frozen command. The command is
built (and validated against column metadata + field rules) once, in
from_payload(); services never see raw request dictionaries.

For update commands, None means "not provided": none of the updatable
columns are nullable, so an explicit null is rejected by validate_payload.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from flask import current_app

from .models import Dealer, ProductBatch, TransferRequest, Invoice, Payment, RequestStatus
from .models.invoices import VALID_PAYMENT_STATUSES
from .time_utils import parse_iso_date
from .validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_batch,
    require_positive_int,
    require_positive_amount,
)


DEALER_POLICY = ModelValidationPolicy(
    writable_fields={"user_id", "business_name", "gst_number", "license_number", "address", "phone"},
    required_on_create={"user_id", "business_name", "gst_number", "license_number", "address", "phone"},
    immutable_fields={"user_id", "gst_number", "license_number"},
)

BATCH_POLICY = ModelValidationPolicy(
    writable_fields={
        "dealer_id", "name", "batch_number", "manufacturer", "quantity",
        "mrp", "dealer_price", "manufacturing_date", "expiry_date",
    },
    required_on_create={
        "dealer_id", "name", "batch_number", "manufacturer", "quantity",
        "mrp", "dealer_price", "manufacturing_date", "expiry_date",
    },
    immutable_fields={"dealer_id"},
)

REQUEST_POLICY = ModelValidationPolicy(
    writable_fields={"requesting_dealer_id", "responding_dealer_id", "product_id", "quantity", "status"},
    required_on_create={"requesting_dealer_id", "responding_dealer_id", "product_id", "quantity"},
    immutable_fields={"requesting_dealer_id", "responding_dealer_id", "product_id"},
)

INVOICE_POLICY = ModelValidationPolicy(
    writable_fields={"request_id", "invoice_number", "dealer_id", "buyer_dealer_id", "subtotal"},
    required_on_create={"request_id", "subtotal"},
    immutable_fields={"request_id", "dealer_id", "buyer_dealer_id"},
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"invoice_id", "amount", "payment_method", "transaction_id", "status"},
    required_on_create={"invoice_id", "amount", "payment_method", "transaction_id"},
    immutable_fields={"invoice_id", "transaction_id"},
)


def parse_status(value: Any) -> RequestStatus:
    """Accept a status token case-insensitively; unknown tokens are a ValidationError."""
    if isinstance(value, RequestStatus):
        return value
    if not isinstance(value, str):
        raise ValidationError("status must be a string", "status")
    try:
        return RequestStatus(value.strip().upper())
    except ValueError:
        valid = ", ".join(s.value for s in RequestStatus)
        raise ValidationError(f"Invalid status. Must be one of: {valid}", "status")


# =============================================================================
# DEALERS
# =============================================================================

@dataclass(frozen=True)
class CreateDealer:
    user_id: str
    business_name: str
    gst_number: str
    license_number: str
    address: str
    phone: str

    @classmethod
    def from_payload(cls, payload: Mapping) -> "CreateDealer":
        patch = validate_payload(model=Dealer, payload=payload, policy=DEALER_POLICY, partial=False)
        return cls(**patch)


@dataclass(frozen=True)
class UpdateDealer:
    business_name: str | None = None
    address: str | None = None
    phone: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "UpdateDealer":
        patch = validate_payload(model=Dealer, payload=payload, policy=DEALER_POLICY, partial=True)
        return cls(**patch)


# =============================================================================
# PRODUCT BATCHES
# =============================================================================

@dataclass(frozen=True)
class CreateBatch:
    dealer_id: int
    name: str
    batch_number: str
    manufacturer: str
    quantity: int
    mrp: Decimal
    dealer_price: Decimal
    manufacturing_date: date
    expiry_date: date

    @classmethod
    def from_payload(cls, payload: Mapping) -> "CreateBatch":
        patch = validate_payload(model=ProductBatch, payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(patch)
        return cls(**patch)


@dataclass(frozen=True)
class UpdateBatch:
    name: str | None = None
    batch_number: str | None = None
    manufacturer: str | None = None
    quantity: int | None = None
    mrp: Decimal | None = None
    dealer_price: Decimal | None = None
    manufacturing_date: date | None = None
    expiry_date: date | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "UpdateBatch":
        patch = validate_payload(model=ProductBatch, payload=payload, policy=BATCH_POLICY, partial=True)
        enforce_rules_batch(patch)
        return cls(**patch)

    def changes(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class AdjustStock:
    delta: int
    note: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "AdjustStock":
        if not isinstance(payload, Mapping):
            raise ValidationError("Invalid JSON payload")
        delta = payload.get("delta")
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise ValidationError("delta must be a non-zero integer", "delta")
        note = payload.get("note")
        return cls(delta=delta, note=str(note).strip() if note else None)


# =============================================================================
# TRANSFER REQUESTS
# =============================================================================

@dataclass(frozen=True)
class CreateRequest:
    requesting_dealer_id: int
    responding_dealer_id: int
    product_id: int
    quantity: int

    @classmethod
    def from_payload(cls, payload: Mapping) -> "CreateRequest":
        if isinstance(payload, Mapping) and "status" in payload:
            raise ValidationError("status cannot be set on create", "status")
        patch = validate_payload(model=TransferRequest, payload=payload, policy=REQUEST_POLICY, partial=False)
        return cls(**patch)


@dataclass(frozen=True)
class UpdateRequest:
    quantity: int | None = None
    status: RequestStatus | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "UpdateRequest":
        if isinstance(payload, Mapping) and payload.get("status") is not None:
            status = parse_status(payload["status"])
            payload = {k: v for k, v in payload.items() if k != "status"}
        else:
            status = None
        patch = validate_payload(model=TransferRequest, payload=payload, policy=REQUEST_POLICY, partial=True)
        quantity = patch.get("quantity")
        if quantity is not None:
            require_positive_int(quantity, "quantity")
        return cls(quantity=quantity, status=status)


# =============================================================================
# INVOICES
# =============================================================================

@dataclass(frozen=True)
class CreateInvoice:
    request_id: int
    subtotal: Decimal
    invoice_number: str | None = None
    dealer_id: int | None = None
    buyer_dealer_id: int | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "CreateInvoice":
        patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=False)
        patch["subtotal"] = require_positive_amount(patch["subtotal"], "subtotal")
        return cls(**patch)


@dataclass(frozen=True)
class UpdateInvoice:
    invoice_number: str | None = None
    subtotal: Decimal | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "UpdateInvoice":
        patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=True)
        if patch.get("subtotal") is not None:
            patch["subtotal"] = require_positive_amount(patch["subtotal"], "subtotal")
        return cls(**patch)


# =============================================================================
# PAYMENTS
# =============================================================================

@dataclass(frozen=True)
class RecordPayment:
    invoice_id: int
    amount: Decimal
    payment_method: str
    transaction_id: str

    @classmethod
    def from_payload(cls, payload: Mapping) -> "RecordPayment":
        if isinstance(payload, Mapping) and "status" in payload:
            raise ValidationError("status cannot be set on create", "status")
        patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=False)
        patch["amount"] = require_positive_amount(patch["amount"], "amount")
        return cls(**patch)


@dataclass(frozen=True)
class UpdatePayment:
    amount: Decimal | None = None
    payment_method: str | None = None
    status: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "UpdatePayment":
        patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=True)
        if patch.get("amount") is not None:
            patch["amount"] = require_positive_amount(patch["amount"], "amount")
        if patch.get("status") is not None:
            status = patch["status"].upper()
            if status not in VALID_PAYMENT_STATUSES:
                raise ValidationError("Invalid status. Must be PENDING or COMPLETED", "status")
            patch["status"] = status
        return cls(**patch)


# =============================================================================
# LISTING
# =============================================================================

@dataclass(frozen=True)
class PageParams:
    limit: int
    offset: int
    search: str | None = None

    @classmethod
    def from_args(cls, args: Mapping) -> "PageParams":
        default_limit = current_app.config.get("DEFAULT_PAGE_LIMIT", 10)
        max_limit = current_app.config.get("MAX_PAGE_LIMIT", 100)

        limit = _int_arg(args, "limit", default_limit)
        offset = _int_arg(args, "offset", 0)
        if limit <= 0:
            raise ValidationError("limit must be a positive integer", "limit")
        if offset < 0:
            raise ValidationError("offset must be >= 0", "offset")

        search = (args.get("search") or "").strip() or None
        return cls(limit=min(limit, max_limit), offset=offset, search=search)


def _int_arg(args: Mapping, name: str, default: int | None) -> int | None:
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer", name)


def int_arg(args: Mapping, name: str) -> int | None:
    """Optional integer query parameter; malformed values are a ValidationError."""
    return _int_arg(args, name, None)


def date_arg(args: Mapping, name: str) -> date | None:
    """Optional YYYY-MM-DD query parameter."""
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return parse_iso_date(str(raw))
    except ValueError:
        raise ValidationError(f"{name} must be a valid ISO date", name)
