from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class RequestStatus(str, Enum):
    """Closed set of transfer request states. Transition table lives in request_service."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value


class TransferRequest(db.Model):
    """
    Offer by a requesting dealer to acquire `quantity` units of a batch
    owned by the responding dealer.

    LIFECYCLE:
    1. PENDING: created, awaiting the responding dealer
    2. CONFIRMED: accepted (response_date stamped)
    3. REJECTED: declined (response_date stamped, terminal)
    4. COMPLETED: fulfilled (terminal)

    Transitions never touch product quantity. Stock leaves the batch only
    through the explicit apply-stock operation, recorded in stock_applied_at.
    """
    __tablename__ = "requests"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_requests_quantity_positive"),
        db.CheckConstraint(
            "requesting_dealer_id <> responding_dealer_id",
            name="ck_requests_distinct_dealers",
        ),
        db.Index("ix_requests_status_request_date", "status", "request_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    requesting_dealer_id = db.Column(
        db.Integer, db.ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    responding_dealer_id = db.Column(
        db.Integer, db.ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )

    quantity = db.Column(db.Integer, nullable=False)

    # PENDING, CONFIRMED, COMPLETED, REJECTED
    status = db.Column(db.String(16), nullable=False, default=RequestStatus.PENDING.value, index=True)

    request_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    response_date = db.Column(db.DateTime(timezone=True), nullable=True)
    stock_applied_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    requesting_dealer = db.relationship(
        "Dealer", foreign_keys=[requesting_dealer_id], back_populates="outgoing_requests"
    )
    responding_dealer = db.relationship(
        "Dealer", foreign_keys=[responding_dealer_id], back_populates="incoming_requests"
    )
    product = db.relationship("ProductBatch", back_populates="requests")
    invoice = db.relationship(
        "Invoice",
        back_populates="request",
        uselist=False,
        cascade="all, delete",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requesting_dealer_id": self.requesting_dealer_id,
            "responding_dealer_id": self.responding_dealer_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "status": self.status,
            "request_date": to_utc_z(self.request_date),
            "response_date": to_utc_z(self.response_date) if self.response_date else None,
            "stock_applied_at": to_utc_z(self.stock_applied_at) if self.stock_applied_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
