from __future__ import annotations

from ..extensions import db
from ..money_utils import money_str
from ..time_utils import to_iso_date, to_utc_z, utcnow


class ProductBatch(db.Model):
    """
    A quantity of one manufactured lot of a product, owned by one dealer.

    Freshness (EXPIRED / EXPIRING_SOON / GOOD / EXCELLENT) is derived from
    expiry_date at read time and never stored; see inventory_service.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("mrp > 0", name="ck_products_mrp_positive"),
        db.CheckConstraint("dealer_price > 0", name="ck_products_dealer_price_positive"),
        db.CheckConstraint("expiry_date > manufacturing_date", name="ck_products_expiry_after_mfg"),
        db.Index("ix_products_dealer_expiry", "dealer_id", "expiry_date"),
        db.Index("ix_products_batch_number", "batch_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    dealer_id = db.Column(
        db.Integer,
        db.ForeignKey("dealers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(255), nullable=False)
    batch_number = db.Column(db.String(64), nullable=False)
    manufacturer = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)

    # Maximum retail price and dealer-to-dealer price, fixed-point rupees
    mrp = db.Column(db.Numeric(12, 2), nullable=False)
    dealer_price = db.Column(db.Numeric(12, 2), nullable=False)

    manufacturing_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.Date, nullable=False, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    dealer = db.relationship("Dealer", back_populates="products")
    requests = db.relationship(
        "TransferRequest",
        back_populates="product",
        cascade="all, delete",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ProductBatch id={self.id} name={self.name!r} batch={self.batch_number!r} dealer_id={self.dealer_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dealer_id": self.dealer_id,
            "name": self.name,
            "batch_number": self.batch_number,
            "manufacturer": self.manufacturer,
            "quantity": self.quantity,
            "mrp": money_str(self.mrp),
            "dealer_price": money_str(self.dealer_price),
            "manufacturing_date": to_iso_date(self.manufacturing_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
