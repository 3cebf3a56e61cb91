# Overview: Flask API routes for the event ledger; read-only audit trail.

from flask import Blueprint, request, jsonify, current_app

from ..commands import PageParams, int_arg
from ..services.ledger_service import list_ledger_events
from ..validation import DomainError

"""
Ordering: oldest first by occurred_at (business time), ties by id.
Filters: entity_type (request, invoice, payment, product, dealer), entity_id, event_type.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
def list_ledger_events_route():
    try:
        page = PageParams.from_args(request.args)
        events = list_ledger_events(
            entity_type=(request.args.get("entity_type") or "").strip() or None,
            entity_id=int_arg(request.args, "entity_id"),
            event_type=(request.args.get("event_type") or "").strip() or None,
            limit=page.limit,
            offset=page.offset,
        )
        return jsonify({
            "items": [e.to_dict() for e in events],
            "limit": page.limit,
            "offset": page.offset,
        }), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list ledger events")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
