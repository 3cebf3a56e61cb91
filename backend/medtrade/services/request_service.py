# Overview: Service-layer operations for transfer requests; owns the request lifecycle state machine.

"""
Transfer Request Lifecycle

================================================================================
STATE MACHINE:
    PENDING -> CONFIRMED -> COMPLETED
    PENDING -> REJECTED

    PENDING:   created by the requesting dealer, awaiting a response
    CONFIRMED: accepted by the responding dealer; invoicing is allowed
    COMPLETED: fulfilled (terminal)
    REJECTED:  declined (terminal)

RULES:
1. The transition table below is the single source of truth
2. Self-transitions are accepted as no-ops
3. Leaving PENDING (to CONFIRMED or REJECTED) stamps response_date;
   CONFIRMED -> COMPLETED leaves it untouched
4. Quantity may change only while the request is non-terminal
5. Transitions never change product stock; apply_request_stock() does,
   once, and only for COMPLETED requests
================================================================================
"""
from __future__ import annotations

from ..extensions import db
from ..models import Dealer, Invoice, ProductBatch, RequestStatus, TransferRequest
from ..commands import CreateRequest, UpdateRequest, PageParams, parse_status
from ..time_utils import utcnow
from ..validation import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from .concurrency import commit_or_raise, guarded, lock_for_update
from .ledger_service import append_ledger_event
from . import inventory_service


# Ordered: the order is reported back to callers in InvalidTransitionError
TRANSITIONS: dict[RequestStatus, tuple[RequestStatus, ...]] = {
    RequestStatus.PENDING: (RequestStatus.CONFIRMED, RequestStatus.REJECTED),
    RequestStatus.CONFIRMED: (RequestStatus.COMPLETED,),
    RequestStatus.COMPLETED: (),
    RequestStatus.REJECTED: (),
}

# Transitions that record the responding dealer's answer
RESPONSE_TRANSITIONS = {
    (RequestStatus.PENDING, RequestStatus.CONFIRMED),
    (RequestStatus.PENDING, RequestStatus.REJECTED),
}

# Statuses an invoice may be raised against
INVOICEABLE_STATUSES = (RequestStatus.CONFIRMED, RequestStatus.COMPLETED)


def allowed_transitions(status: RequestStatus | str) -> list[RequestStatus]:
    return list(TRANSITIONS[parse_status(status)])


def is_terminal(status: RequestStatus | str) -> bool:
    return not TRANSITIONS[parse_status(status)]


def can_transition(from_status: RequestStatus | str, to_status: RequestStatus | str) -> bool:
    current = parse_status(from_status)
    target = parse_status(to_status)
    if current == target:
        return True
    return target in TRANSITIONS[current]


def check_transition(from_status: RequestStatus | str, to_status: RequestStatus | str) -> None:
    """
    Raises:
        InvalidTransitionError: with the current status and the ordered list
            of valid next statuses (empty for terminal states)
    """
    if not can_transition(from_status, to_status):
        current = parse_status(from_status)
        raise InvalidTransitionError(
            current.value,
            parse_status(to_status).value,
            [s.value for s in TRANSITIONS[current]],
        )


def apply_transition(req: TransferRequest, new_status: RequestStatus | str) -> bool:
    """
    Move an in-memory request to new_status. Returns False for a self-transition
    (nothing changed), True otherwise. Does not flush or commit.
    """
    current = parse_status(req.status)
    target = parse_status(new_status)

    check_transition(current, target)
    if current == target:
        return False

    now = utcnow()
    req.status = target.value
    if (current, target) in RESPONSE_TRANSITIONS and req.response_date is None:
        req.response_date = now

    append_ledger_event(
        entity_type="request",
        entity_id=req.id,
        event_type=f"request.{target.value.lower()}",
        from_status=current.value,
        to_status=target.value,
        occurred_at=now,
    )
    return True


# =============================================================================
# COMMANDS
# =============================================================================

def get_request(request_id: int) -> TransferRequest:
    req = db.session.get(TransferRequest, request_id)
    if req is None:
        raise NotFoundError("Request", request_id)
    return req


def create_request(cmd: CreateRequest) -> TransferRequest:
    """
    Open a transfer request in PENDING.

    Raises:
        ValidationError: quantity <= 0, same dealer on both sides, or the
            batch is not owned by the responding dealer
        NotFoundError: a referenced dealer or batch does not exist
    """
    if cmd.quantity is None or cmd.quantity <= 0:
        raise ValidationError("Quantity must be a positive number", "quantity")
    if cmd.requesting_dealer_id == cmd.responding_dealer_id:
        raise ValidationError(
            "Requesting dealer cannot be the same as responding dealer",
            "responding_dealer_id",
        )

    def _op():
        for dealer_id in (cmd.requesting_dealer_id, cmd.responding_dealer_id):
            if db.session.get(Dealer, dealer_id) is None:
                raise NotFoundError("Dealer", dealer_id)

        batch = db.session.get(ProductBatch, cmd.product_id)
        if batch is None:
            raise NotFoundError("Product", cmd.product_id)
        if batch.dealer_id != cmd.responding_dealer_id:
            raise ValidationError(
                f"Product {batch.id} is not listed by dealer {cmd.responding_dealer_id}",
                "product_id",
            )

        now = utcnow()
        req = TransferRequest(
            requesting_dealer_id=cmd.requesting_dealer_id,
            responding_dealer_id=cmd.responding_dealer_id,
            product_id=cmd.product_id,
            quantity=cmd.quantity,
            status=RequestStatus.PENDING.value,
            request_date=now,
            response_date=None,
        )
        db.session.add(req)
        db.session.flush()

        append_ledger_event(
            entity_type="request",
            entity_id=req.id,
            event_type="request.created",
            to_status=RequestStatus.PENDING.value,
            occurred_at=now,
            note=f"product={req.product_id} qty={req.quantity}",
        )

        commit_or_raise(context="create_request")
        return req

    return guarded(_op, context="create_request")


def transition_request(request_id: int, new_status: RequestStatus | str) -> TransferRequest:
    """
    Read request, validate the move against the transition table, write.

    Raises:
        NotFoundError: request does not exist
        ValidationError: unknown status token
        InvalidTransitionError: move not allowed from the current status
    """
    target = parse_status(new_status)
    return update_request(request_id, UpdateRequest(status=target))


def update_request(request_id: int, cmd: UpdateRequest) -> TransferRequest:
    """
    Apply a quantity change and/or a status transition atomically.
    The quantity is validated against the status the request has before
    the transition, so a request cannot be resized in a terminal state.
    """
    def _op():
        req = lock_for_update(db.session.query(TransferRequest).filter_by(id=request_id)).first()
        if req is None:
            raise NotFoundError("Request", request_id)

        if cmd.quantity is not None:
            if cmd.quantity <= 0:
                raise ValidationError("Quantity must be a positive number", "quantity")
            if is_terminal(req.status) and cmd.quantity != req.quantity:
                raise ValidationError(
                    f"Cannot change quantity of a {req.status} request",
                    "quantity",
                )
            req.quantity = cmd.quantity

        if cmd.status is not None:
            apply_transition(req, cmd.status)

        commit_or_raise(context="update_request")
        return req

    return guarded(_op, context="update_request")


def apply_request_stock(request_id: int) -> TransferRequest:
    """
    Move the requested quantity out of the responding dealer's batch.

    This is the explicit stock adjustment that lifecycle transitions never
    perform. It runs once per request (stock_applied_at) and only after the
    request is COMPLETED.

    Raises:
        ValidationError: request not COMPLETED, or insufficient stock
        ConflictError: stock already applied
    """
    def _op():
        req = lock_for_update(db.session.query(TransferRequest).filter_by(id=request_id)).first()
        if req is None:
            raise NotFoundError("Request", request_id)

        if req.status != RequestStatus.COMPLETED.value:
            raise ValidationError(
                f"Stock can only be applied to COMPLETED requests (request is {req.status})",
                "status",
            )
        if req.stock_applied_at is not None:
            raise ConflictError(f"Stock for request {request_id} has already been applied")

        inventory_service.adjust_quantity(
            req.product_id,
            -req.quantity,
            note=f"Transfer request {req.id} to dealer {req.requesting_dealer_id}",
            commit=False,
        )
        req.stock_applied_at = utcnow()

        append_ledger_event(
            entity_type="request",
            entity_id=req.id,
            event_type="request.stock_applied",
            occurred_at=req.stock_applied_at,
            note=f"product={req.product_id} qty={req.quantity}",
        )

        commit_or_raise(context="apply_request_stock")
        return req

    return guarded(_op, context="apply_request_stock")


def delete_request(request_id: int) -> TransferRequest:
    """
    Raises:
        ConflictError: an invoice has been issued for the request
    """
    def _op():
        req = get_request(request_id)
        if db.session.query(Invoice.id).filter(Invoice.request_id == request_id).first() is not None:
            raise ConflictError(f"Request {request_id} has an invoice and cannot be deleted")

        db.session.delete(req)
        commit_or_raise(context="delete_request")
        return req

    return guarded(_op, context="delete_request")


# =============================================================================
# QUERIES
# =============================================================================

def list_requests(
    page: PageParams,
    *,
    requesting_dealer_id: int | None = None,
    responding_dealer_id: int | None = None,
    dealer_id: int | None = None,
    product_id: int | None = None,
    status: RequestStatus | str | None = None,
) -> list[TransferRequest]:
    query = db.session.query(TransferRequest)

    if requesting_dealer_id is not None:
        query = query.filter(TransferRequest.requesting_dealer_id == requesting_dealer_id)
    if responding_dealer_id is not None:
        query = query.filter(TransferRequest.responding_dealer_id == responding_dealer_id)
    if dealer_id is not None:
        query = query.filter(
            (TransferRequest.requesting_dealer_id == dealer_id)
            | (TransferRequest.responding_dealer_id == dealer_id)
        )
    if product_id is not None:
        query = query.filter(TransferRequest.product_id == product_id)
    if status is not None:
        query = query.filter(TransferRequest.status == parse_status(status).value)

    if page.search:
        query = query.filter(TransferRequest.status.ilike(f"%{page.search}%"))

    return (
        query.order_by(TransferRequest.request_date.desc(), TransferRequest.id.desc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )
