from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Dealer(db.Model):
    """
    Registered wholesale trading entity.

    IDENTITY: gst_number and license_number are globally unique and, together
    with user_id, immutable once created. Only contact fields change.
    """
    __tablename__ = "dealers"
    __table_args__ = (
        db.UniqueConstraint("gst_number", name="uq_dealers_gst_number"),
        db.UniqueConstraint("license_number", name="uq_dealers_license_number"),
        db.Index("ix_dealers_business_name", "business_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Owning user identity (issued by the external auth provider)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    business_name = db.Column(db.String(255), nullable=False)
    gst_number = db.Column(db.String(32), nullable=False)
    license_number = db.Column(db.String(64), nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    products = db.relationship(
        "ProductBatch",
        back_populates="dealer",
        cascade="all, delete",
        lazy=True,
    )
    outgoing_requests = db.relationship(
        "TransferRequest",
        foreign_keys="TransferRequest.requesting_dealer_id",
        back_populates="requesting_dealer",
        cascade="all, delete",
        lazy=True,
    )
    incoming_requests = db.relationship(
        "TransferRequest",
        foreign_keys="TransferRequest.responding_dealer_id",
        back_populates="responding_dealer",
        cascade="all, delete",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Dealer id={self.id} business_name={self.business_name!r} gst={self.gst_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_name": self.business_name,
            "gst_number": self.gst_number,
            "license_number": self.license_number,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
