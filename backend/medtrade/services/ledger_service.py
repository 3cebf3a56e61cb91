# Overview: Service-layer operations for the event ledger; append-only audit of lifecycle events.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import LedgerEvent
from ..time_utils import utcnow
"""
Event Ledger Invariants

- Append-only audit log for lifecycle events (requests, invoices, payments, stock).
- No domain/business logic in the ledger itself.
- Events are written inside the same DB transaction as the domain event they record.
- occurred_at is business time (injected clock); created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    entity_type: str,
    entity_id: int,
    event_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> LedgerEvent:
    """
    Append-only ledger event. Flushes but never commits; the caller's
    transaction decides whether the event survives.
    """
    ev = LedgerEvent(
        entity_type=entity_type,
        entity_id=entity_id,
        event_type=event_type,
        from_status=from_status,
        to_status=to_status,
        occurred_at=occurred_at or utcnow(),
        note=note,
    )
    db.session.add(ev)
    db.session.flush()

    current_app.logger.info(
        "%s %s=%s%s",
        event_type,
        entity_type,
        entity_id,
        f" {from_status}->{to_status}" if from_status or to_status else "",
    )
    return ev


def list_ledger_events(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    event_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[LedgerEvent]:
    query = db.session.query(LedgerEvent)
    if entity_type:
        query = query.filter(LedgerEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(LedgerEvent.entity_id == entity_id)
    if event_type:
        query = query.filter(LedgerEvent.event_type == event_type)
    return (
        query.order_by(LedgerEvent.occurred_at.asc(), LedgerEvent.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
