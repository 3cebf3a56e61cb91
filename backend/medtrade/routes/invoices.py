# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/medtrade/routes/invoices.py
"""
Invoice API Routes

TAX:
- GST fixed at 18% of the subtotal
- gst_amount and total rounded half-up to cents
- Monetary fields are returned as strings with two decimals ("10030.00")
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..commands import CreateInvoice, UpdateInvoice, PageParams, int_arg
from ..services import invoice_service
from ..validation import DomainError, NotFoundError, ValidationError


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
def list_invoices_route():
    """
    Query params:
    - dealer_id (seller), buyer_dealer_id, request_id
    - invoice_number: exact lookup, returns at most one item
    - search: matches invoice number
    - limit (default 10, max 100), offset
    """
    try:
        page = PageParams.from_args(request.args)
        number = (request.args.get("invoice_number") or "").strip()
        if number:
            invoice = invoice_service.get_invoice_by_number(number)
            invoices = [invoice] if invoice is not None else []
        else:
            invoices = invoice_service.list_invoices(
                page,
                dealer_id=int_arg(request.args, "dealer_id"),
                buyer_dealer_id=int_arg(request.args, "buyer_dealer_id"),
                request_id=int_arg(request.args, "request_id"),
            )
        return jsonify({
            "items": [i.to_dict() for i in invoices],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@invoices_bp.get("/tax-preview")
def tax_preview_route():
    """GST breakdown for ?subtotal= without creating anything."""
    try:
        subtotal = request.args.get("subtotal")
        if subtotal is None or not subtotal.strip():
            raise ValidationError("subtotal is required", "subtotal")
        return jsonify(invoice_service.compute_tax(subtotal).to_dict()), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@invoices_bp.post("")
def create_invoice_route():
    """
    Issue an invoice for a CONFIRMED or COMPLETED request.

    Request body:
    {
        "request_id": 1,
        "subtotal": "8500.00",
        "invoice_number": "INV-2025-001"  (optional, generated when omitted)
    }

    Returns:
        201: Invoice created (seller = responding dealer, buyer = requesting dealer)
        400: Invalid subtotal or request not invoiceable
        404: Request not found
        409: invoice_number taken or request already invoiced
    """
    try:
        cmd = CreateInvoice.from_payload(request.get_json(silent=True))
        invoice = invoice_service.create_invoice(cmd)
        return jsonify(invoice.to_dict()), 201
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@invoices_bp.get("/<int:invoice_id>")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        data = invoice.to_dict()
        data["payments"] = [p.to_dict() for p in invoice.payments]
        return jsonify(data), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@invoices_bp.get("/by-request/<int:request_id>")
def get_invoice_by_request_route(request_id: int):
    invoice = invoice_service.get_invoice_by_request(request_id)
    if invoice is None:
        e = NotFoundError("Invoice for request", request_id)
        return jsonify(e.to_dict()), e.status_code
    return jsonify(invoice.to_dict()), 200


@invoices_bp.put("/<int:invoice_id>")
def update_invoice_route(invoice_id: int):
    """
    Request body (any subset):
    {
        "invoice_number": "INV-2025-002",
        "subtotal": "9000.00"
    }
    """
    try:
        cmd = UpdateInvoice.from_payload(request.get_json(silent=True))
        invoice = invoice_service.update_invoice(invoice_id, cmd)
        return jsonify(invoice.to_dict()), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


@invoices_bp.delete("/<int:invoice_id>")
def delete_invoice_route(invoice_id: int):
    try:
        invoice_service.delete_invoice(invoice_id)
        return jsonify({"deleted": True, "id": invoice_id}), 200
    except DomainError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
