from __future__ import annotations

from ..extensions import db
from ..money_utils import money_str
from ..time_utils import to_utc_z, utcnow


PAYMENT_STATUS_PENDING = "PENDING"
PAYMENT_STATUS_COMPLETED = "COMPLETED"
VALID_PAYMENT_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_COMPLETED)


class Invoice(db.Model):
    """
    Tax invoice issued for a fulfilled transfer request.

    dealer_id is the seller (responding dealer), buyer_dealer_id the
    requesting dealer. total = subtotal + gst_amount, GST fixed at 18%,
    all figures rounded to cents.

    One invoice per request: request_id carries a unique constraint.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.UniqueConstraint("request_id", name="uq_invoices_request_id"),
        db.CheckConstraint("subtotal > 0", name="ck_invoices_subtotal_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False)
    invoice_number = db.Column(db.String(64), nullable=False)

    dealer_id = db.Column(db.Integer, db.ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False, index=True)
    buyer_dealer_id = db.Column(db.Integer, db.ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    gst_amount = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    request = db.relationship("TransferRequest", back_populates="invoice")
    seller = db.relationship("Dealer", foreign_keys=[dealer_id])
    buyer = db.relationship("Dealer", foreign_keys=[buyer_dealer_id])
    payments = db.relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "invoice_number": self.invoice_number,
            "dealer_id": self.dealer_id,
            "buyer_dealer_id": self.buyer_dealer_id,
            "subtotal": money_str(self.subtotal),
            "gst_amount": money_str(self.gst_amount),
            "total": money_str(self.total),
            "invoice_date": to_utc_z(self.invoice_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Payment(db.Model):
    """
    Settlement attempt against one invoice.

    Several payments may point at the same invoice. Status moves from
    PENDING to COMPLETED only by explicit update; nothing rolls payments
    up into the invoice.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_payments_transaction_id"),
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)

    # NEFT, RTGS, UPI, Cheque, Bank Transfer, ...
    payment_method = db.Column(db.String(64), nullable=False)
    transaction_id = db.Column(db.String(128), nullable=False)

    # PENDING, COMPLETED
    status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PENDING, index=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    invoice = db.relationship("Invoice", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "status": self.status,
            "payment_date": to_utc_z(self.payment_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
