# Overview: Flask API routes for payments; parses input and returns JSON responses.

# backend/medtrade/routes/payments.py
"""
Payment Ledger API Routes

DESIGN:
- Several payments may be recorded against one invoice
- New payments start PENDING; status is set to COMPLETED via PUT
- transaction_id is unique and cannot be changed
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..commands import RecordPayment, UpdatePayment, PageParams, int_arg
from ..services import payment_service
from ..validation import DomainError


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
def list_payments_route():
    """
    Query params:
    - invoice_id, status (PENDING | COMPLETED), transaction_id
    - search: matches transaction id or payment method
    - limit (default 10, max 100), offset
    """
    try:
        page = PageParams.from_args(request.args)
        payments = payment_service.list_payments(
            page,
            invoice_id=int_arg(request.args, "invoice_id"),
            status=request.args.get("status"),
            transaction_id=request.args.get("transaction_id"),
        )
        return jsonify({
            "items": [p.to_dict() for p in payments],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@payments_bp.post("")
def record_payment_route():
    """
    Record a payment.

    Request body:
    {
        "invoice_id": 1,
        "amount": "10030.00",
        "payment_method": "NEFT",
        "transaction_id": "TXN202501150001"
    }

    Returns:
        201: Payment recorded (status PENDING)
        400: Invalid amount or missing field
        404: Invoice not found
        409: transaction_id already recorded
    """
    try:
        cmd = RecordPayment.from_payload(request.get_json(silent=True))
        payment = payment_service.record_payment(cmd)
        return jsonify(payment.to_dict()), 201
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@payments_bp.get("/<int:payment_id>")
def get_payment_route(payment_id: int):
    try:
        return jsonify(payment_service.get_payment(payment_id).to_dict()), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.put("/<int:payment_id>")
def update_payment_route(payment_id: int):
    """
    Request body (any subset):
    {
        "amount": "5000.00",
        "payment_method": "RTGS",
        "status": "COMPLETED"
    }
    """
    try:
        cmd = UpdatePayment.from_payload(request.get_json(silent=True))
        payment = payment_service.update_payment(payment_id, cmd)
        return jsonify(payment.to_dict()), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update payment")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@payments_bp.delete("/<int:payment_id>")
def delete_payment_route(payment_id: int):
    try:
        payment_service.delete_payment(payment_id)
        return jsonify({"deleted": True, "id": payment_id}), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete payment")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
