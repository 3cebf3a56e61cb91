# Overview: Service-layer operations for document numbering; allocates invoice numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import today


DOCUMENT_TYPE_INVOICE = "INVOICE"

PREFIXES = {
    DOCUMENT_TYPE_INVOICE: "INV",
}


def _current_number(document_type: str, period: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period=period)
        .scalar()
    )
    return current - 1


def next_document_number(*, document_type: str = DOCUMENT_TYPE_INVOICE, pad: int = 5) -> str:
    """
    Allocate the next document number for a type within the current year,
    e.g. INV-2025-00001.

    Increments the counter in place with a single UPDATE so two writers
    cannot read the same value. Flushes but does not commit; the number is
    only consumed if the caller's transaction commits.
    """
    if document_type not in PREFIXES:
        raise ValueError(f"Unknown document type: {document_type}")

    period = str(today().year)
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        next_num = _current_number(document_type, period)
    else:
        seq = DocumentSequence(document_type=document_type, period=period, next_number=2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            # Another writer created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            db.session.flush()
            next_num = _current_number(document_type, period)

    return f"{PREFIXES[document_type]}-{period}-{next_num:0{pad}d}"
