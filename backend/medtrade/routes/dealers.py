# Overview: Flask API routes for dealers operations; parses input and returns JSON responses.

# backend/medtrade/routes/dealers.py
"""
Dealer Registry API Routes

DESIGN:
- gst_number and license_number are unique across all dealers
- user_id, gst_number and license_number cannot change after registration
- Deleting a dealer with trading history is refused unless cascade delete is enabled
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..commands import CreateDealer, UpdateDealer, PageParams
from ..services import dealer_service
from ..validation import DomainError


dealers_bp = Blueprint("dealers", __name__, url_prefix="/api/dealers")


@dealers_bp.get("")
def list_dealers_route():
    """
    List dealers.

    Query params:
    - search: matches business name, GST number or phone
    - user_id: only dealers owned by this user
    - limit (default 10, max 100), offset
    """
    try:
        page = PageParams.from_args(request.args)
        dealers = dealer_service.list_dealers(page, user_id=request.args.get("user_id"))
        return jsonify({
            "items": [d.to_dict() for d in dealers],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list dealers")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@dealers_bp.post("")
def create_dealer_route():
    """
    Register a dealer.

    Request body:
    {
        "user_id": "auth0|abc123",
        "business_name": "MediSupply Distributors",
        "gst_number": "27AABCU9603R1ZM",
        "license_number": "MH-MUM-123456",
        "address": "123 Business Park, Mumbai",
        "phone": "+91-9876543210"
    }

    Returns:
        201: Dealer created
        400: Missing or invalid field
        409: gst_number or license_number already registered
    """
    try:
        cmd = CreateDealer.from_payload(request.get_json(silent=True))
        dealer = dealer_service.create_dealer(cmd)
        return jsonify(dealer.to_dict()), 201
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create dealer")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@dealers_bp.get("/<int:dealer_id>")
def get_dealer_route(dealer_id: int):
    try:
        return jsonify(dealer_service.get_dealer(dealer_id).to_dict()), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@dealers_bp.put("/<int:dealer_id>")
def update_dealer_route(dealer_id: int):
    """Update business_name, address or phone."""
    try:
        cmd = UpdateDealer.from_payload(request.get_json(silent=True))
        dealer = dealer_service.update_dealer(dealer_id, cmd)
        return jsonify(dealer.to_dict()), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update dealer")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@dealers_bp.delete("/<int:dealer_id>")
def delete_dealer_route(dealer_id: int):
    try:
        dealer_service.delete_dealer(dealer_id)
        return jsonify({"deleted": True, "id": dealer_id}), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete dealer")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
