# Overview: Flask API routes for transfer requests; parses input and returns JSON responses.

# backend/medtrade/routes/requests.py
"""
Transfer Request API Routes

LIFECYCLE:
    PENDING -> CONFIRMED -> COMPLETED
    PENDING -> REJECTED

- Status changes go through PUT (with "status") or POST /<id>/transition
- An illegal move returns 409 with the current status and the valid next statuses
- Stock leaves the responding dealer's batch only via POST /<id>/apply-stock
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..commands import CreateRequest, UpdateRequest, PageParams, int_arg, parse_status
from ..services import request_service
from ..validation import DomainError, ValidationError


requests_bp = Blueprint("requests", __name__, url_prefix="/api/requests")


def _serialize(req) -> dict:
    data = req.to_dict()
    data["valid_transitions"] = [s.value for s in request_service.allowed_transitions(req.status)]
    return data


@requests_bp.get("")
def list_requests_route():
    """
    Query params:
    - requesting_dealer_id, responding_dealer_id, dealer_id (either side), product_id
    - status: PENDING | CONFIRMED | COMPLETED | REJECTED
    - search: matches status
    - limit (default 10, max 100), offset
    """
    try:
        page = PageParams.from_args(request.args)
        status = request.args.get("status")
        reqs = request_service.list_requests(
            page,
            requesting_dealer_id=int_arg(request.args, "requesting_dealer_id"),
            responding_dealer_id=int_arg(request.args, "responding_dealer_id"),
            dealer_id=int_arg(request.args, "dealer_id"),
            product_id=int_arg(request.args, "product_id"),
            status=parse_status(status) if status else None,
        )
        return jsonify({
            "items": [_serialize(r) for r in reqs],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list requests")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@requests_bp.post("")
def create_request_route():
    """
    Open a transfer request (status starts PENDING).

    Request body:
    {
        "requesting_dealer_id": 2,
        "responding_dealer_id": 1,
        "product_id": 1,
        "quantity": 100
    }

    Returns:
        201: Request created
        400: Invalid input, same dealer on both sides, or product not owned by responder
        404: Dealer or product not found
    """
    try:
        cmd = CreateRequest.from_payload(request.get_json(silent=True))
        req = request_service.create_request(cmd)
        return jsonify(_serialize(req)), 201
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create request")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@requests_bp.get("/<int:request_id>")
def get_request_route(request_id: int):
    try:
        return jsonify(_serialize(request_service.get_request(request_id))), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@requests_bp.put("/<int:request_id>")
def update_request_route(request_id: int):
    """
    Request body (any subset):
    {
        "quantity": 150,
        "status": "CONFIRMED"
    }
    """
    try:
        cmd = UpdateRequest.from_payload(request.get_json(silent=True))
        req = request_service.update_request(request_id, cmd)
        return jsonify(_serialize(req)), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update request")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@requests_bp.post("/<int:request_id>/transition")
def transition_request_route(request_id: int):
    """
    Request body:
    {
        "status": "CONFIRMED"
    }

    Returns:
        200: Request in its new status (unchanged on a self-transition)
        400: Unknown status
        404: Request not found
        409: Transition not allowed from the current status
    """
    try:
        data = request.get_json(silent=True) or {}
        if data.get("status") is None:
            raise ValidationError("status is required", "status")
        req = request_service.transition_request(request_id, data["status"])
        return jsonify(_serialize(req)), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to transition request")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@requests_bp.post("/<int:request_id>/apply-stock")
def apply_stock_route(request_id: int):
    """Deduct the requested quantity from the batch of a COMPLETED request, once."""
    try:
        req = request_service.apply_request_stock(request_id)
        return jsonify(_serialize(req)), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to apply request stock")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@requests_bp.delete("/<int:request_id>")
def delete_request_route(request_id: int):
    try:
        request_service.delete_request(request_id)
        return jsonify({"deleted": True, "id": request_id}), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete request")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
