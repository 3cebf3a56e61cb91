# Overview: Service-layer operations for reporting; read-only dashboard and analytics aggregates.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import Dealer, Invoice, Payment, RequestStatus, TransferRequest
from ..models.invoices import PAYMENT_STATUS_COMPLETED
from ..money_utils import money_str, to_decimal
from ..time_utils import today, to_utc_z, utcnow
from . import inventory_service, invoice_service


def request_status_counts(*, dealer_id: int | None = None) -> dict:
    """Count of requests per status; every status is present, zero or not."""
    query = db.session.query(TransferRequest.status, func.count(TransferRequest.id))
    if dealer_id is not None:
        query = query.filter(
            (TransferRequest.requesting_dealer_id == dealer_id)
            | (TransferRequest.responding_dealer_id == dealer_id)
        )
    counts = {s.value: 0 for s in RequestStatus}
    for status, count in query.group_by(TransferRequest.status).all():
        counts[status] = int(count)
    return counts


def payment_totals(*, dealer_id: int | None = None) -> dict:
    query = db.session.query(
        Payment.status,
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.amount), 0),
    )
    if dealer_id is not None:
        query = query.join(Invoice, Invoice.id == Payment.invoice_id).filter(Invoice.dealer_id == dealer_id)

    totals = {"payment_count": 0, "amount_received": "0.00", "amount_pending": "0.00"}
    for status, count, amount in query.group_by(Payment.status).all():
        totals["payment_count"] += int(count)
        key = "amount_received" if status == PAYMENT_STATUS_COMPLETED else "amount_pending"
        totals[key] = money_str(to_decimal(totals[key]) + to_decimal(amount))
    return totals


def dashboard_summary(*, dealer_id: int | None = None, as_of: date | None = None) -> dict:
    as_of = as_of or today()
    stats = inventory_service.inventory_stats(dealer_id=dealer_id, as_of=as_of)
    statuses = request_status_counts(dealer_id=dealer_id)

    invoice_query = db.session.query(func.count(Invoice.id))
    if dealer_id is not None:
        invoice_query = invoice_query.filter(
            (Invoice.dealer_id == dealer_id) | (Invoice.buyer_dealer_id == dealer_id)
        )

    summary = {
        "as_of": as_of.isoformat(),
        "generated_at": to_utc_z(utcnow()),
        "total_products": stats["total_batches"],
        "expiring_soon": stats["expiring_soon"],
        "expired": stats["expired"],
        "pending_requests": statuses[RequestStatus.PENDING.value],
        "total_invoices": int(invoice_query.scalar() or 0),
    }
    if dealer_id is None:
        summary["total_dealers"] = db.session.query(func.count(Dealer.id)).scalar() or 0
    return summary


def stock_report(*, dealer_id: int | None = None, as_of: date | None = None) -> dict:
    as_of = as_of or today()
    return {
        **inventory_service.inventory_stats(dealer_id=dealer_id, as_of=as_of),
        "by_manufacturer": inventory_service.stock_by_manufacturer(dealer_id=dealer_id),
        "near_expiry": [
            inventory_service.serialize_batch(b, as_of)
            for b in inventory_service.near_expiry_alerts(dealer_id=dealer_id, as_of=as_of)
        ],
    }


def revenue_report(*, dealer_id: int | None = None) -> dict:
    return {
        **invoice_service.invoice_totals(dealer_id=dealer_id),
        "by_month": invoice_service.monthly_revenue(dealer_id=dealer_id),
        "payments": payment_totals(dealer_id=dealer_id),
    }

