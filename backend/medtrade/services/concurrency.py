# Overview: Service-layer helpers for locking, retries and commit-time constraint translation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import DomainError, DuplicateError, InternalError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Version counters on the mapped models catch what SQLite lets through.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate immediately.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def duplicate_from_integrity(exc: IntegrityError, unique_fields: dict[str, str]) -> DuplicateError | None:
    """
    Map a unique-constraint violation onto the natural key it protects.

    unique_fields: {field_name: constraint_name}. SQLite reports
    "UNIQUE constraint failed: table.column", PostgreSQL reports the
    constraint name, so both are matched.
    """
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for field, constraint in unique_fields.items():
        if constraint in text or f".{field}" in text:
            return DuplicateError(f"{field} already exists", field)
    return None


def commit_or_raise(*, unique_fields: dict[str, str] | None = None, context: str = "commit") -> None:
    """
    Commit the current session, translating storage failures.

    - Unique violations on a known natural key -> DuplicateError
    - Lock contention / stale rows -> retried via run_with_retry by the caller
    - Anything else from the data layer -> logged, InternalError (no driver detail)
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        dup = duplicate_from_integrity(exc, unique_fields or {})
        if dup is not None:
            raise dup
        current_app.logger.exception("Integrity failure during %s", context)
        raise InternalError()
    except (OperationalError, StaleDataError):
        # Let run_with_retry see these
        raise
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Data access failure during %s", context)
        raise InternalError()


def guarded(func, *, context: str, unique_fields: dict[str, str] | None = None):
    """
    run_with_retry + translation of exhausted retries into InternalError.
    Domain errors raised inside func pass through untouched. A unique
    violation surfacing at flush (before commit_or_raise) maps the same way.
    """
    try:
        return run_with_retry(func)
    except DomainError:
        raise
    except IntegrityError as exc:
        db.session.rollback()
        dup = duplicate_from_integrity(exc, unique_fields or {})
        if dup is not None:
            raise dup
        current_app.logger.exception("Integrity failure during %s", context)
        raise InternalError()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Data access failure during %s", context)
        raise InternalError()
