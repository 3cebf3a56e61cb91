# Overview: Service-layer operations for dealers; encapsulates business logic and database work.

"""
Dealer Registry

IDENTITY: gst_number and license_number are globally unique natural keys.
The pre-insert lookup gives a precise error message; the unique constraints
on the table are what actually close the race between two concurrent creates.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Dealer, Invoice, TransferRequest
from ..commands import CreateDealer, UpdateDealer, PageParams
from ..validation import ConflictError, DuplicateError, NotFoundError
from .concurrency import commit_or_raise, guarded, lock_for_update
from .ledger_service import append_ledger_event

DEALER_UNIQUE_FIELDS = {
    "gst_number": "uq_dealers_gst_number",
    "license_number": "uq_dealers_license_number",
}


def _find_by(field: str, value: str) -> Dealer | None:
    return db.session.query(Dealer).filter(getattr(Dealer, field) == value).first()


def get_dealer(dealer_id: int) -> Dealer:
    dealer = db.session.get(Dealer, dealer_id)
    if dealer is None:
        raise NotFoundError("Dealer", dealer_id)
    return dealer


def create_dealer(cmd: CreateDealer) -> Dealer:
    """
    Register a dealer.

    Raises:
        DuplicateError: gst_number or license_number already registered
    """
    def _op():
        for field in ("gst_number", "license_number"):
            if _find_by(field, getattr(cmd, field)) is not None:
                raise DuplicateError(f"{field} already exists", field)

        dealer = Dealer(
            user_id=cmd.user_id,
            business_name=cmd.business_name,
            gst_number=cmd.gst_number,
            license_number=cmd.license_number,
            address=cmd.address,
            phone=cmd.phone,
        )
        db.session.add(dealer)
        db.session.flush()

        append_ledger_event(
            entity_type="dealer",
            entity_id=dealer.id,
            event_type="dealer.registered",
            note=f"gst={dealer.gst_number} license={dealer.license_number}",
        )

        commit_or_raise(unique_fields=DEALER_UNIQUE_FIELDS, context="create_dealer")
        return dealer

    return guarded(_op, context="create_dealer", unique_fields=DEALER_UNIQUE_FIELDS)


def update_dealer(dealer_id: int, cmd: UpdateDealer) -> Dealer:
    """Update contact fields. Identity fields are rejected at the command boundary."""
    def _op():
        dealer = lock_for_update(db.session.query(Dealer).filter_by(id=dealer_id)).first()
        if dealer is None:
            raise NotFoundError("Dealer", dealer_id)

        for field in ("business_name", "address", "phone"):
            value = getattr(cmd, field)
            if value is not None:
                setattr(dealer, field, value)

        commit_or_raise(unique_fields=DEALER_UNIQUE_FIELDS, context="update_dealer")
        return dealer

    return guarded(_op, context="update_dealer")


def has_trading_history(dealer_id: int) -> bool:
    request_exists = (
        db.session.query(TransferRequest.id)
        .filter(
            or_(
                TransferRequest.requesting_dealer_id == dealer_id,
                TransferRequest.responding_dealer_id == dealer_id,
            )
        )
        .first()
        is not None
    )
    if request_exists:
        return True
    return (
        db.session.query(Invoice.id)
        .filter(or_(Invoice.dealer_id == dealer_id, Invoice.buyer_dealer_id == dealer_id))
        .first()
        is not None
    )


def delete_dealer(dealer_id: int, *, cascade: bool | None = None) -> Dealer:
    """
    Delete a dealer.

    Dealers with requests or invoices are kept unless cascade deletion is
    enabled (ALLOW_CASCADE_DELETE, used by seed and test databases), in which
    case batches, requests, invoices and payments go with the dealer.

    Raises:
        NotFoundError: dealer does not exist
        ConflictError: dealer has trading history and cascade is off
    """
    if cascade is None:
        cascade = bool(current_app.config.get("ALLOW_CASCADE_DELETE"))

    def _op():
        dealer = get_dealer(dealer_id)
        if not cascade and has_trading_history(dealer_id):
            raise ConflictError(
                f"Dealer {dealer_id} has transfer requests or invoices and cannot be deleted"
            )

        db.session.delete(dealer)
        commit_or_raise(context="delete_dealer")
        return dealer

    return guarded(_op, context="delete_dealer")


def list_dealers(page: PageParams, *, user_id: str | None = None) -> list[Dealer]:
    query = db.session.query(Dealer)

    if user_id:
        query = query.filter(Dealer.user_id == user_id)

    if page.search:
        pattern = f"%{page.search}%"
        query = query.filter(
            or_(
                Dealer.business_name.ilike(pattern),
                Dealer.gst_number.ilike(pattern),
                Dealer.phone.ilike(pattern),
            )
        )

    return (
        query.order_by(Dealer.business_name.asc(), Dealer.id.asc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )
