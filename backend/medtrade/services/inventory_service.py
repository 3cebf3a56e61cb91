# Overview: Service-layer operations for inventory; batch records and expiry classification.

"""
Inventory Ledger

FRESHNESS CLASSES (d = expiry_date - as_of, in whole days):
    EXPIRED        d < 0
    EXPIRING_SOON  0 <= d <= 30
    GOOD           30 < d <= 90
    EXCELLENT      d > 90

Classification is computed at read time from the caller's as-of date and is
never persisted. Ordering for stock movement is FEFO (first-expiry-first-out),
ties broken by batch id.

Lifecycle commands on requests never touch batch quantity; adjust_quantity()
is the only path that changes stock after creation besides a plain update.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Dealer, ProductBatch, TransferRequest
from ..commands import CreateBatch, UpdateBatch, PageParams
from ..money_utils import money_str
from ..time_utils import days_between, today
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import commit_or_raise, guarded, lock_for_update
from .ledger_service import append_ledger_event


EXPIRING_SOON_MAX_DAYS = 30
GOOD_MAX_DAYS = 90

BATCH_ORDERS = ("expiry", "recent")


class ExpiryClass(str, Enum):
    EXPIRED = "EXPIRED"
    EXPIRING_SOON = "EXPIRING_SOON"
    GOOD = "GOOD"
    EXCELLENT = "EXCELLENT"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# CLASSIFICATION (pure)
# =============================================================================

def days_until_expiry(batch, as_of: date) -> int:
    return days_between(batch.expiry_date, as_of)


def classify_days(d: int) -> ExpiryClass:
    if d < 0:
        return ExpiryClass.EXPIRED
    if d <= EXPIRING_SOON_MAX_DAYS:
        return ExpiryClass.EXPIRING_SOON
    if d <= GOOD_MAX_DAYS:
        return ExpiryClass.GOOD
    return ExpiryClass.EXCELLENT


def classify_expiry(batch, as_of: date) -> ExpiryClass:
    """Freshness class of a batch as of the given date. Pure; no clock access."""
    return classify_days(days_until_expiry(batch, as_of))


def order_by_expiry(batches: Iterable) -> list:
    """FEFO: soonest expiry first, ties broken by batch id."""
    return sorted(batches, key=lambda b: (b.expiry_date, b.id if b.id is not None else 0))


def serialize_batch(batch: ProductBatch, as_of: date | None = None) -> dict:
    as_of = as_of or today()
    d = days_until_expiry(batch, as_of)
    return {
        **batch.to_dict(),
        "days_until_expiry": d,
        "expiry_class": classify_days(d).value,
    }


# =============================================================================
# VALIDATION
# =============================================================================

def validate_batch_dates(manufacturing_date: date, expiry_date: date) -> None:
    if expiry_date <= manufacturing_date:
        raise ValidationError("expiry_date must be after manufacturing_date", "expiry_date")


# =============================================================================
# CRUD
# =============================================================================

def get_batch(batch_id: int) -> ProductBatch:
    batch = db.session.get(ProductBatch, batch_id)
    if batch is None:
        raise NotFoundError("Product", batch_id)
    return batch


def create_batch(cmd: CreateBatch) -> ProductBatch:
    """
    List a new batch for a dealer.

    Raises:
        NotFoundError: dealer does not exist
        ValidationError: dates out of order
    """
    validate_batch_dates(cmd.manufacturing_date, cmd.expiry_date)

    def _op():
        if db.session.get(Dealer, cmd.dealer_id) is None:
            raise NotFoundError("Dealer", cmd.dealer_id)

        batch = ProductBatch(
            dealer_id=cmd.dealer_id,
            name=cmd.name,
            batch_number=cmd.batch_number,
            manufacturer=cmd.manufacturer,
            quantity=cmd.quantity,
            mrp=cmd.mrp,
            dealer_price=cmd.dealer_price,
            manufacturing_date=cmd.manufacturing_date,
            expiry_date=cmd.expiry_date,
        )
        db.session.add(batch)
        db.session.flush()

        append_ledger_event(
            entity_type="product",
            entity_id=batch.id,
            event_type="product.listed",
            note=f"batch={batch.batch_number} qty={batch.quantity}",
        )

        commit_or_raise(context="create_batch")
        return batch

    return guarded(_op, context="create_batch")


def update_batch(batch_id: int, cmd: UpdateBatch) -> ProductBatch:
    """
    Patch a batch. Date ordering is checked against the effective values,
    so changing only one of the two dates is still validated.
    """
    changes = cmd.changes()

    def _op():
        batch = lock_for_update(db.session.query(ProductBatch).filter_by(id=batch_id)).first()
        if batch is None:
            raise NotFoundError("Product", batch_id)

        validate_batch_dates(
            changes.get("manufacturing_date", batch.manufacturing_date),
            changes.get("expiry_date", batch.expiry_date),
        )

        for field, value in changes.items():
            setattr(batch, field, value)

        commit_or_raise(context="update_batch")
        return batch

    return guarded(_op, context="update_batch")


def delete_batch(batch_id: int) -> ProductBatch:
    """
    Raises:
        ConflictError: transfer requests reference the batch
    """
    def _op():
        batch = get_batch(batch_id)
        referenced = (
            db.session.query(TransferRequest.id)
            .filter(TransferRequest.product_id == batch_id)
            .first()
        )
        if referenced is not None:
            raise ConflictError(f"Product {batch_id} is referenced by transfer requests and cannot be deleted")

        db.session.delete(batch)
        commit_or_raise(context="delete_batch")
        return batch

    return guarded(_op, context="delete_batch")


def adjust_quantity(batch_id: int, delta: int, *, note: str | None = None, commit: bool = True) -> ProductBatch:
    """
    Explicit stock movement on a batch.

    Raises:
        ValidationError: delta is zero or would drive quantity below zero
    """
    if delta == 0:
        raise ValidationError("delta must be non-zero", "delta")

    def _op():
        batch = lock_for_update(db.session.query(ProductBatch).filter_by(id=batch_id)).first()
        if batch is None:
            raise NotFoundError("Product", batch_id)

        new_quantity = batch.quantity + delta
        if new_quantity < 0:
            raise ValidationError(
                f"Insufficient stock for product {batch_id}. On-hand: {batch.quantity}, requested: {-delta}",
                "quantity",
            )

        batch.quantity = new_quantity

        append_ledger_event(
            entity_type="product",
            entity_id=batch.id,
            event_type="product.stock_adjusted",
            note=note or f"delta={delta} quantity={new_quantity}",
        )

        if commit:
            commit_or_raise(context="adjust_quantity")
        return batch

    if not commit:
        return _op()
    return guarded(_op, context="adjust_quantity")


# =============================================================================
# QUERIES
# =============================================================================

@dataclass(frozen=True)
class BatchFilters:
    dealer_id: int | None = None
    batch_number: str | None = None
    expiring_before: date | None = None
    expiring_after: date | None = None
    near_expiry_days: int | None = None
    expiry_class: ExpiryClass | None = None
    order: str = "expiry"


def _expiry_window(expiry_class: ExpiryClass, as_of: date) -> tuple[date | None, date | None]:
    """Inclusive expiry_date bounds that select exactly one freshness class."""
    if expiry_class == ExpiryClass.EXPIRED:
        return None, as_of - timedelta(days=1)
    if expiry_class == ExpiryClass.EXPIRING_SOON:
        return as_of, as_of + timedelta(days=EXPIRING_SOON_MAX_DAYS)
    if expiry_class == ExpiryClass.GOOD:
        return as_of + timedelta(days=EXPIRING_SOON_MAX_DAYS + 1), as_of + timedelta(days=GOOD_MAX_DAYS)
    return as_of + timedelta(days=GOOD_MAX_DAYS + 1), None


def list_batches(page: PageParams, filters: BatchFilters, *, as_of: date | None = None) -> list[ProductBatch]:
    if filters.near_expiry_days is not None and filters.near_expiry_days < 0:
        raise ValidationError("near_expiry_days must be >= 0", "near_expiry_days")
    if filters.order not in BATCH_ORDERS:
        raise ValidationError(f"Invalid order. Must be one of: {', '.join(BATCH_ORDERS)}", "order")

    as_of = as_of or today()
    query = db.session.query(ProductBatch)

    if filters.dealer_id is not None:
        query = query.filter(ProductBatch.dealer_id == filters.dealer_id)
    if filters.batch_number:
        query = query.filter(ProductBatch.batch_number == filters.batch_number)
    if filters.expiring_before is not None:
        query = query.filter(ProductBatch.expiry_date <= filters.expiring_before)
    if filters.expiring_after is not None:
        query = query.filter(ProductBatch.expiry_date >= filters.expiring_after)
    if filters.near_expiry_days is not None:
        query = query.filter(
            ProductBatch.expiry_date >= as_of,
            ProductBatch.expiry_date <= as_of + timedelta(days=filters.near_expiry_days),
        )
    if filters.expiry_class is not None:
        lower, upper = _expiry_window(filters.expiry_class, as_of)
        if lower is not None:
            query = query.filter(ProductBatch.expiry_date >= lower)
        if upper is not None:
            query = query.filter(ProductBatch.expiry_date <= upper)

    if page.search:
        pattern = f"%{page.search}%"
        query = query.filter(
            or_(
                ProductBatch.name.ilike(pattern),
                ProductBatch.batch_number.ilike(pattern),
                ProductBatch.manufacturer.ilike(pattern),
            )
        )

    if filters.order == "recent":
        query = query.order_by(ProductBatch.created_at.desc(), ProductBatch.id.desc())
    else:
        query = query.order_by(ProductBatch.expiry_date.asc(), ProductBatch.id.asc())

    return query.offset(page.offset).limit(page.limit).all()


def near_expiry_alerts(
    *,
    days: int | None = None,
    dealer_id: int | None = None,
    as_of: date | None = None,
) -> list[ProductBatch]:
    """Non-expired batches expiring within `days`, FEFO-ordered."""
    as_of = as_of or today()
    if days is None:
        days = current_app.config.get("NEAR_EXPIRY_DAYS", EXPIRING_SOON_MAX_DAYS)
    if days < 0:
        raise ValidationError("days must be >= 0", "days")

    query = db.session.query(ProductBatch).filter(
        ProductBatch.expiry_date >= as_of,
        ProductBatch.expiry_date <= as_of + timedelta(days=days),
    )
    if dealer_id is not None:
        query = query.filter(ProductBatch.dealer_id == dealer_id)
    return order_by_expiry(query.all())


def inventory_stats(*, dealer_id: int | None = None, as_of: date | None = None) -> dict:
    """
    Totals for the inventory dashboard: batch count, units, stock value at
    dealer price, and a count per freshness class.
    """
    as_of = as_of or today()
    query = db.session.query(ProductBatch)
    if dealer_id is not None:
        query = query.filter(ProductBatch.dealer_id == dealer_id)
    batches = query.all()

    by_class = {c.value: 0 for c in ExpiryClass}
    total_value = Decimal("0.00")
    total_units = 0
    for batch in batches:
        by_class[classify_expiry(batch, as_of).value] += 1
        total_value += Decimal(batch.dealer_price) * batch.quantity
        total_units += batch.quantity

    return {
        "as_of": as_of.isoformat(),
        "total_batches": len(batches),
        "total_units": total_units,
        "total_value": money_str(total_value),
        "by_expiry_class": by_class,
        "expiring_soon": by_class[ExpiryClass.EXPIRING_SOON.value],
        "expired": by_class[ExpiryClass.EXPIRED.value],
    }


def stock_by_manufacturer(*, dealer_id: int | None = None) -> list[dict]:
    query = db.session.query(
        ProductBatch.manufacturer,
        func.count(ProductBatch.id),
        func.coalesce(func.sum(ProductBatch.quantity), 0),
    )
    if dealer_id is not None:
        query = query.filter(ProductBatch.dealer_id == dealer_id)
    rows = query.group_by(ProductBatch.manufacturer).order_by(ProductBatch.manufacturer.asc()).all()
    return [
        {"manufacturer": manufacturer, "batches": int(batches), "units": int(units)}
        for manufacturer, batches, units in rows
    ]
