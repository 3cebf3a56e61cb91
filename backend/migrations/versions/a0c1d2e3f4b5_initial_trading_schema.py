"""Initial schema: dealers, product batches, transfer requests, invoices, payments, ledger

Revision ID: a0c1d2e3f4b5
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a0c1d2e3f4b5"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "dealers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("gst_number", sa.String(length=32), nullable=False),
        sa.Column("license_number", sa.String(length=64), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("gst_number", name="uq_dealers_gst_number"),
        sa.UniqueConstraint("license_number", name="uq_dealers_license_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_dealers_user_id", "dealers", ["user_id"], unique=False)
    op.create_index("ix_dealers_business_name", "dealers", ["business_name"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("dealer_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=False),
        sa.Column("manufacturer", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("mrp", sa.Numeric(12, 2), nullable=False),
        sa.Column("dealer_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("manufacturing_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["dealer_id"], ["dealers.id"], ondelete="CASCADE"),
        sa.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        sa.CheckConstraint("mrp > 0", name="ck_products_mrp_positive"),
        sa.CheckConstraint("dealer_price > 0", name="ck_products_dealer_price_positive"),
        sa.CheckConstraint("expiry_date > manufacturing_date", name="ck_products_expiry_after_mfg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_dealer_id", "products", ["dealer_id"], unique=False)
    op.create_index("ix_products_expiry_date", "products", ["expiry_date"], unique=False)
    op.create_index("ix_products_dealer_expiry", "products", ["dealer_id", "expiry_date"], unique=False)
    op.create_index("ix_products_batch_number", "products", ["batch_number"], unique=False)

    op.create_table(
        "requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("requesting_dealer_id", sa.Integer(), nullable=False),
        sa.Column("responding_dealer_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("request_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("response_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stock_applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["requesting_dealer_id"], ["dealers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["responding_dealer_id"], ["dealers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.CheckConstraint("quantity > 0", name="ck_requests_quantity_positive"),
        sa.CheckConstraint(
            "requesting_dealer_id <> responding_dealer_id",
            name="ck_requests_distinct_dealers",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_requests_requesting_dealer_id", "requests", ["requesting_dealer_id"], unique=False)
    op.create_index("ix_requests_responding_dealer_id", "requests", ["responding_dealer_id"], unique=False)
    op.create_index("ix_requests_product_id", "requests", ["product_id"], unique=False)
    op.create_index("ix_requests_status", "requests", ["status"], unique=False)
    op.create_index("ix_requests_status_request_date", "requests", ["status", "request_date"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("dealer_id", sa.Integer(), nullable=False),
        sa.Column("buyer_dealer_id", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("gst_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("invoice_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dealer_id"], ["dealers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["buyer_dealer_id"], ["dealers.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        sa.UniqueConstraint("request_id", name="uq_invoices_request_id"),
        sa.CheckConstraint("subtotal > 0", name="ck_invoices_subtotal_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_invoices_dealer_id", "invoices", ["dealer_id"], unique=False)
    op.create_index("ix_invoices_buyer_dealer_id", "invoices", ["buyer_dealer_id"], unique=False)
    op.create_index("ix_invoices_invoice_date", "invoices", ["invoice_date"], unique=False)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=64), nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("transaction_id", name="uq_payments_transaction_id"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"], unique=False)
    op.create_index("ix_payments_status", "payments", ["status"], unique=False)

    op.create_table(
        "ledger_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("from_status", sa.String(length=16), nullable=True),
        sa.Column("to_status", sa.String(length=16), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_ledger_events_entity", "ledger_events", ["entity_type", "entity_id"], unique=False)
    op.create_index("ix_ledger_events_event_type", "ledger_events", ["event_type"], unique=False)
    op.create_index("ix_ledger_events_occurred_at", "ledger_events", ["occurred_at"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("period", sa.String(length=8), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("document_type", "period", name="uq_document_sequences_type_period"),
    )


def downgrade():
    op.drop_table("document_sequences")

    op.drop_index("ix_ledger_events_occurred_at", table_name="ledger_events")
    op.drop_index("ix_ledger_events_event_type", table_name="ledger_events")
    op.drop_index("ix_ledger_events_entity", table_name="ledger_events")
    op.drop_table("ledger_events")

    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_invoice_id", table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_invoices_invoice_date", table_name="invoices")
    op.drop_index("ix_invoices_buyer_dealer_id", table_name="invoices")
    op.drop_index("ix_invoices_dealer_id", table_name="invoices")
    op.drop_table("invoices")

    op.drop_index("ix_requests_status_request_date", table_name="requests")
    op.drop_index("ix_requests_status", table_name="requests")
    op.drop_index("ix_requests_product_id", table_name="requests")
    op.drop_index("ix_requests_responding_dealer_id", table_name="requests")
    op.drop_index("ix_requests_requesting_dealer_id", table_name="requests")
    op.drop_table("requests")

    op.drop_index("ix_products_batch_number", table_name="products")
    op.drop_index("ix_products_dealer_expiry", table_name="products")
    op.drop_index("ix_products_expiry_date", table_name="products")
    op.drop_index("ix_products_dealer_id", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_dealers_business_name", table_name="dealers")
    op.drop_index("ix_dealers_user_id", table_name="dealers")
    op.drop_table("dealers")
