# Overview: Service-layer operations for invoices; GST calculation and invoice records.

"""
Invoice Calculator

TAX RULES:
- GST is a fixed 18% of the subtotal
- gst_amount = round2(subtotal * 0.18), from the subtotal as given
- total      = round2(subtotal + gst_amount)
- subtotal is stored rounded to cents after tax is computed
- Rounding is half-up on the cent boundary

An invoice is raised against a CONFIRMED or COMPLETED request. The seller is
the request's responding dealer, the buyer its requesting dealer. One
invoice per request.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, Payment, TransferRequest
from ..commands import CreateInvoice, UpdateInvoice, PageParams
from ..money_utils import money_str, round2, to_decimal
from ..time_utils import utcnow
from ..validation import ConflictError, DuplicateError, NotFoundError, ValidationError
from .concurrency import commit_or_raise, guarded, lock_for_update
from .document_service import next_document_number
from .ledger_service import append_ledger_event
from .request_service import INVOICEABLE_STATUSES


GST_RATE = Decimal("0.18")

INVOICE_UNIQUE_FIELDS = {
    "invoice_number": "uq_invoices_invoice_number",
    "request_id": "uq_invoices_request_id",
}


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: Decimal
    gst_amount: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": money_str(self.subtotal),
            "gst_rate": str(GST_RATE),
            "gst_amount": money_str(self.gst_amount),
            "total": money_str(self.total),
        }


def compute_tax(subtotal) -> TaxBreakdown:
    """
    GST and total for a subtotal.

    Raises:
        ValidationError: subtotal is not a number or is <= 0
    """
    try:
        amount = to_decimal(subtotal)
    except ValueError:
        raise ValidationError("subtotal must be a number", "subtotal")
    if amount <= 0:
        raise ValidationError("subtotal must be greater than 0", "subtotal")

    gst_amount = round2(amount * GST_RATE)
    return TaxBreakdown(subtotal=round2(amount), gst_amount=gst_amount, total=round2(amount + gst_amount))


# =============================================================================
# LOOKUPS
# =============================================================================

def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def get_invoice_by_request(request_id: int) -> Invoice | None:
    return db.session.query(Invoice).filter(Invoice.request_id == request_id).first()


def get_invoice_by_number(invoice_number: str) -> Invoice | None:
    return db.session.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()


# =============================================================================
# COMMANDS
# =============================================================================

def create_invoice(cmd: CreateInvoice) -> Invoice:
    """
    Issue an invoice for a transfer request.

    Raises:
        NotFoundError: request does not exist
        ValidationError: request not CONFIRMED/COMPLETED, or supplied
            dealer ids disagree with the request
        DuplicateError: invoice_number taken, or the request already has an invoice
    """
    breakdown = compute_tax(cmd.subtotal)

    def _op():
        req = lock_for_update(db.session.query(TransferRequest).filter_by(id=cmd.request_id)).first()
        if req is None:
            raise NotFoundError("Request", cmd.request_id)

        if req.status not in {s.value for s in INVOICEABLE_STATUSES}:
            raise ValidationError(
                f"Cannot invoice a {req.status} request. Request must be CONFIRMED or COMPLETED",
                "request_id",
            )
        if cmd.dealer_id is not None and cmd.dealer_id != req.responding_dealer_id:
            raise ValidationError("dealer_id must be the responding dealer of the request", "dealer_id")
        if cmd.buyer_dealer_id is not None and cmd.buyer_dealer_id != req.requesting_dealer_id:
            raise ValidationError(
                "buyer_dealer_id must be the requesting dealer of the request",
                "buyer_dealer_id",
            )

        if get_invoice_by_request(req.id) is not None:
            raise DuplicateError(f"Request {req.id} already has an invoice", "request_id")

        invoice_number = cmd.invoice_number
        if invoice_number:
            if get_invoice_by_number(invoice_number) is not None:
                raise DuplicateError("invoice_number already exists", "invoice_number")
        else:
            # Skip numbers a caller already claimed by hand
            invoice_number = next_document_number()
            while get_invoice_by_number(invoice_number) is not None:
                invoice_number = next_document_number()

        now = utcnow()
        invoice = Invoice(
            request_id=req.id,
            invoice_number=invoice_number,
            dealer_id=req.responding_dealer_id,
            buyer_dealer_id=req.requesting_dealer_id,
            subtotal=breakdown.subtotal,
            gst_amount=breakdown.gst_amount,
            total=breakdown.total,
            invoice_date=now,
        )
        db.session.add(invoice)
        db.session.flush()

        append_ledger_event(
            entity_type="invoice",
            entity_id=invoice.id,
            event_type="invoice.issued",
            occurred_at=now,
            note=f"{invoice.invoice_number} request={req.id} total={money_str(invoice.total)}",
        )

        commit_or_raise(unique_fields=INVOICE_UNIQUE_FIELDS, context="create_invoice")
        return invoice

    return guarded(_op, context="create_invoice", unique_fields=INVOICE_UNIQUE_FIELDS)


def update_invoice(invoice_id: int, cmd: UpdateInvoice) -> Invoice:
    """
    Change the invoice number and/or subtotal. A changed number is checked
    against every other invoice; a changed subtotal recomputes GST and total.
    """
    breakdown = compute_tax(cmd.subtotal) if cmd.subtotal is not None else None

    def _op():
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        if cmd.invoice_number and cmd.invoice_number != invoice.invoice_number:
            taken = (
                db.session.query(Invoice.id)
                .filter(Invoice.invoice_number == cmd.invoice_number, Invoice.id != invoice_id)
                .first()
            )
            if taken is not None:
                raise DuplicateError("invoice_number already exists", "invoice_number")
            invoice.invoice_number = cmd.invoice_number

        if breakdown is not None:
            invoice.subtotal = breakdown.subtotal
            invoice.gst_amount = breakdown.gst_amount
            invoice.total = breakdown.total

        commit_or_raise(unique_fields=INVOICE_UNIQUE_FIELDS, context="update_invoice")
        return invoice

    return guarded(_op, context="update_invoice", unique_fields=INVOICE_UNIQUE_FIELDS)


def delete_invoice(invoice_id: int) -> Invoice:
    """
    Raises:
        ConflictError: payments are recorded against the invoice
    """
    def _op():
        invoice = get_invoice(invoice_id)
        if db.session.query(Payment.id).filter(Payment.invoice_id == invoice_id).first() is not None:
            raise ConflictError(f"Invoice {invoice_id} has payments and cannot be deleted")

        db.session.delete(invoice)
        commit_or_raise(context="delete_invoice")
        return invoice

    return guarded(_op, context="delete_invoice")


# =============================================================================
# QUERIES
# =============================================================================

def list_invoices(
    page: PageParams,
    *,
    dealer_id: int | None = None,
    buyer_dealer_id: int | None = None,
    request_id: int | None = None,
) -> list[Invoice]:
    query = db.session.query(Invoice)

    if dealer_id is not None:
        query = query.filter(Invoice.dealer_id == dealer_id)
    if buyer_dealer_id is not None:
        query = query.filter(Invoice.buyer_dealer_id == buyer_dealer_id)
    if request_id is not None:
        query = query.filter(Invoice.request_id == request_id)

    if page.search:
        query = query.filter(Invoice.invoice_number.ilike(f"%{page.search}%"))

    return (
        query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )


def invoice_totals(*, dealer_id: int | None = None) -> dict:
    """Revenue (sum of totals) and GST collected, optionally for one seller."""
    query = db.session.query(
        func.count(Invoice.id),
        func.coalesce(func.sum(Invoice.total), 0),
        func.coalesce(func.sum(Invoice.gst_amount), 0),
    )
    if dealer_id is not None:
        query = query.filter(Invoice.dealer_id == dealer_id)
    count, revenue, gst = query.one()
    return {
        "invoice_count": int(count),
        "total_revenue": money_str(to_decimal(revenue)),
        "total_gst": money_str(to_decimal(gst)),
    }


def monthly_revenue(*, dealer_id: int | None = None) -> list[dict]:
    """
    Per calendar month (YYYY-MM): invoice count, revenue and GST.
    Grouped in Python so the query stays portable across SQLite and PostgreSQL.
    """
    query = db.session.query(Invoice)
    if dealer_id is not None:
        query = query.filter(Invoice.dealer_id == dealer_id)

    months: dict[str, dict] = {}
    for invoice in query.order_by(Invoice.invoice_date.asc()).all():
        key = invoice.invoice_date.strftime("%Y-%m")
        bucket = months.setdefault(key, {"count": 0, "revenue": Decimal("0"), "gst": Decimal("0")})
        bucket["count"] += 1
        bucket["revenue"] += to_decimal(invoice.total)
        bucket["gst"] += to_decimal(invoice.gst_amount)

    return [
        {
            "month": key,
            "invoice_count": bucket["count"],
            "revenue": money_str(bucket["revenue"]),
            "gst": money_str(bucket["gst"]),
        }
        for key, bucket in sorted(months.items())
    ]
