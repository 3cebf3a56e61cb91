# Overview: Service-layer operations for payments; records settlement events against invoices.

"""
Payment Ledger

DESIGN PRINCIPLES:
- Payments are separate from invoices (many-to-one relationship)
- Every payment starts PENDING; COMPLETED is set only by explicit update
- transaction_id is a globally unique external reference and never changes
- Nothing rolls payments up into an invoice balance
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Invoice, Payment
from ..models.invoices import PAYMENT_STATUS_PENDING, VALID_PAYMENT_STATUSES
from ..commands import RecordPayment, UpdatePayment, PageParams
from ..money_utils import money_str
from ..time_utils import utcnow
from ..validation import DuplicateError, NotFoundError, ValidationError
from .concurrency import commit_or_raise, guarded, lock_for_update
from .ledger_service import append_ledger_event


PAYMENT_UNIQUE_FIELDS = {
    "transaction_id": "uq_payments_transaction_id",
}


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError("Payment", payment_id)
    return payment


def record_payment(cmd: RecordPayment) -> Payment:
    """
    Record a payment against an invoice.

    Raises:
        ValidationError: amount <= 0
        NotFoundError: invoice does not exist
        DuplicateError: transaction_id already recorded
    """
    if cmd.amount is None or cmd.amount <= 0:
        raise ValidationError("amount must be greater than 0", "amount")

    def _op():
        if db.session.get(Invoice, cmd.invoice_id) is None:
            raise NotFoundError("Invoice", cmd.invoice_id)

        existing = (
            db.session.query(Payment.id)
            .filter(Payment.transaction_id == cmd.transaction_id)
            .first()
        )
        if existing is not None:
            raise DuplicateError("transaction_id already exists", "transaction_id")

        now = utcnow()
        payment = Payment(
            invoice_id=cmd.invoice_id,
            amount=cmd.amount,
            payment_method=cmd.payment_method,
            transaction_id=cmd.transaction_id,
            status=PAYMENT_STATUS_PENDING,
            payment_date=now,
        )
        db.session.add(payment)
        db.session.flush()

        append_ledger_event(
            entity_type="payment",
            entity_id=payment.id,
            event_type="payment.recorded",
            to_status=PAYMENT_STATUS_PENDING,
            occurred_at=now,
            note=f"invoice={payment.invoice_id} amount={money_str(payment.amount)} method={payment.payment_method}",
        )

        commit_or_raise(unique_fields=PAYMENT_UNIQUE_FIELDS, context="record_payment")
        return payment

    return guarded(_op, context="record_payment", unique_fields=PAYMENT_UNIQUE_FIELDS)


def update_payment(payment_id: int, cmd: UpdatePayment) -> Payment:
    """Update amount, method or status. A status change is written to the ledger."""
    def _op():
        payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
        if payment is None:
            raise NotFoundError("Payment", payment_id)

        if cmd.amount is not None:
            payment.amount = cmd.amount
        if cmd.payment_method is not None:
            payment.payment_method = cmd.payment_method

        if cmd.status is not None and cmd.status != payment.status:
            previous = payment.status
            payment.status = cmd.status
            append_ledger_event(
                entity_type="payment",
                entity_id=payment.id,
                event_type=f"payment.{cmd.status.lower()}",
                from_status=previous,
                to_status=cmd.status,
            )

        commit_or_raise(unique_fields=PAYMENT_UNIQUE_FIELDS, context="update_payment")
        return payment

    return guarded(_op, context="update_payment")


def delete_payment(payment_id: int) -> Payment:
    def _op():
        payment = get_payment(payment_id)
        db.session.delete(payment)
        commit_or_raise(context="delete_payment")
        return payment

    return guarded(_op, context="delete_payment")


def list_payments(
    page: PageParams,
    *,
    invoice_id: int | None = None,
    status: str | None = None,
    transaction_id: str | None = None,
) -> list[Payment]:
    query = db.session.query(Payment)

    if invoice_id is not None:
        query = query.filter(Payment.invoice_id == invoice_id)
    if status:
        status = status.strip().upper()
        if status not in VALID_PAYMENT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_PAYMENT_STATUSES)}", "status")
        query = query.filter(Payment.status == status)
    if transaction_id:
        query = query.filter(Payment.transaction_id == transaction_id)

    if page.search:
        pattern = f"%{page.search}%"
        query = query.filter(
            or_(
                Payment.transaction_id.ilike(pattern),
                Payment.payment_method.ilike(pattern),
            )
        )

    return (
        query.order_by(Payment.payment_date.desc(), Payment.id.desc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )
