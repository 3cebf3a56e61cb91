# Overview: Flask API routes for product batches; parses input and returns JSON responses.

# backend/medtrade/routes/products.py
"""
Product Batch API Routes

Every batch in a response carries its freshness as of the server's today:
- days_until_expiry: whole days until expiry_date (negative once expired)
- expiry_class: EXPIRED, EXPIRING_SOON, GOOD or EXCELLENT
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..commands import AdjustStock, CreateBatch, UpdateBatch, PageParams, date_arg, int_arg
from ..services import inventory_service
from ..services.inventory_service import BatchFilters, ExpiryClass
from ..time_utils import today
from ..validation import DomainError, ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _expiry_class_arg(args) -> ExpiryClass | None:
    raw = (args.get("expiry_class") or "").strip()
    if not raw:
        return None
    try:
        return ExpiryClass(raw.upper())
    except ValueError:
        valid = ", ".join(c.value for c in ExpiryClass)
        raise ValidationError(f"Invalid expiry_class. Must be one of: {valid}", "expiry_class")


@products_bp.get("")
def list_products_route():
    """
    List batches, soonest expiry first.

    Query params:
    - dealer_id, batch_number
    - expiring_before, expiring_after: YYYY-MM-DD, inclusive
    - near_expiry_days: only non-expired batches expiring within N days
    - expiry_class: EXPIRED | EXPIRING_SOON | GOOD | EXCELLENT
    - order: expiry (default) | recent
    - search: matches name, batch number or manufacturer
    - limit (default 10, max 100), offset
    """
    try:
        page = PageParams.from_args(request.args)
        filters = BatchFilters(
            dealer_id=int_arg(request.args, "dealer_id"),
            batch_number=(request.args.get("batch_number") or "").strip() or None,
            expiring_before=date_arg(request.args, "expiring_before"),
            expiring_after=date_arg(request.args, "expiring_after"),
            near_expiry_days=int_arg(request.args, "near_expiry_days"),
            expiry_class=_expiry_class_arg(request.args),
            order=(request.args.get("order") or "expiry").strip().lower(),
        )
        as_of = today()
        batches = inventory_service.list_batches(page, filters, as_of=as_of)
        return jsonify({
            "items": [inventory_service.serialize_batch(b, as_of) for b in batches],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@products_bp.post("")
def create_product_route():
    """
    List a new batch.

    Request body:
    {
        "dealer_id": 1,
        "name": "Paracetamol 500mg",
        "batch_number": "PCM2024001",
        "manufacturer": "Sun Pharma",
        "quantity": 1000,
        "mrp": "2.50",
        "dealer_price": "1.80",
        "manufacturing_date": "2024-01-15",
        "expiry_date": "2026-01-15"
    }
    """
    try:
        cmd = CreateBatch.from_payload(request.get_json(silent=True))
        batch = inventory_service.create_batch(cmd)
        return jsonify(inventory_service.serialize_batch(batch)), 201
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@products_bp.get("/near-expiry")
def near_expiry_route():
    """Non-expired batches expiring within ?days= (default NEAR_EXPIRY_DAYS)."""
    try:
        batches = inventory_service.near_expiry_alerts(
            days=int_arg(request.args, "days"),
            dealer_id=int_arg(request.args, "dealer_id"),
        )
        as_of = today()
        return jsonify({
            "as_of": as_of.isoformat(),
            "items": [inventory_service.serialize_batch(b, as_of) for b in batches],
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/stats")
def stats_route():
    try:
        return jsonify(inventory_service.inventory_stats(dealer_id=int_arg(request.args, "dealer_id"))), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/<int:batch_id>")
def get_product_route(batch_id: int):
    try:
        return jsonify(inventory_service.serialize_batch(inventory_service.get_batch(batch_id))), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:batch_id>")
def update_product_route(batch_id: int):
    try:
        cmd = UpdateBatch.from_payload(request.get_json(silent=True))
        batch = inventory_service.update_batch(batch_id, cmd)
        return jsonify(inventory_service.serialize_batch(batch)), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@products_bp.delete("/<int:batch_id>")
def delete_product_route(batch_id: int):
    try:
        inventory_service.delete_batch(batch_id)
        return jsonify({"deleted": True, "id": batch_id}), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@products_bp.post("/<int:batch_id>/adjust")
def adjust_product_route(batch_id: int):
    """
    Explicit stock movement.

    Request body:
    {
        "delta": -50,
        "note": "Damaged in transit"  (optional)
    }
    """
    try:
        cmd = AdjustStock.from_payload(request.get_json(silent=True))
        batch = inventory_service.adjust_quantity(batch_id, cmd.delta, note=cmd.note)
        return jsonify(inventory_service.serialize_batch(batch)), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust product stock")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
