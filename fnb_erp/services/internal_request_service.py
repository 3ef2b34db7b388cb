from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from fnb_erp.core.config import settings
from fnb_erp.core.errors import InsufficientStockError, NotFoundError, ValidationError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.money import format_qty, to_qty
from fnb_erp.core.permissions import ActorContext
from fnb_erp.core.workflow import StateMachine, append_note, ensure_actor_distinct, ensure_unique_ids
from fnb_erp.models.internal_request import InternalRequest, InternalRequestLine, InternalRequestStatus
from fnb_erp.models.inventory import InventoryReference, ReferenceType, TransactionType
from fnb_erp.schemas.internal_request import (
    InternalRequestConfirmIn,
    InternalRequestCreateIn,
    InternalRequestFulfillIn,
)
from fnb_erp.services import catalog_service, inventory_service, sequence_service

INTERNAL_REQUEST_MACHINE: StateMachine[InternalRequestStatus] = StateMachine(
    name="internal request",
    table={
        (InternalRequestStatus.PENDING, "fulfill"): InternalRequestStatus.ISSUED,
        (InternalRequestStatus.PENDING, "cancel"): InternalRequestStatus.CANCELLED,
        (InternalRequestStatus.ISSUED, "confirm"): InternalRequestStatus.CONFIRMED,
    },
    messages={
        "fulfill": "Request must be in Pending status for fulfillment",
        "cancel": "Only pending requests can be cancelled",
        "confirm": "Request must be in Issued status for confirmation",
    },
)


def get_internal_request(
    db: Session,
    *,
    tenant_id: str,
    request_id: str,
    for_update: bool = False,
) -> InternalRequest:
    stmt = (
        select(InternalRequest)
        .where(InternalRequest.id == request_id, InternalRequest.tenant_id == tenant_id)
        .options(selectinload(InternalRequest.lines))
    )
    if for_update:
        stmt = stmt.with_for_update(of=InternalRequest)
    request = db.execute(stmt).scalar_one_or_none()
    if not request:
        raise NotFoundError("Request not found")
    return request


def list_internal_requests(
    db: Session,
    *,
    tenant_id: str,
    statuses: list[InternalRequestStatus] | None = None,
    created_by_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[InternalRequest], int]:
    filters = [InternalRequest.tenant_id == tenant_id]
    if statuses:
        filters.append(InternalRequest.status.in_(statuses))
    if created_by_id:
        filters.append(InternalRequest.created_by_id == created_by_id)

    total = int(db.execute(select(func.count(InternalRequest.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(InternalRequest)
        .where(*filters)
        .options(selectinload(InternalRequest.lines))
        .order_by(InternalRequest.created_at.desc(), InternalRequest.request_number.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


def create_internal_request(db: Session, *, actor: ActorContext, payload: InternalRequestCreateIn) -> InternalRequest:
    """Raise a stock request.

    Availability is checked coarsely against stock summed over all locations;
    the per-location check happens when the request is fulfilled.
    """
    items = catalog_service.get_items(db, tenant_id=actor.tenant_id, item_ids=[line.item_id for line in payload.lines])

    lines: list[InternalRequestLine] = []
    for position, line in enumerate(payload.lines):
        requested = to_qty(line.requested_qty)
        if requested <= 0:
            raise ValidationError("Each line must have an item and positive quantity")
        available = inventory_service.total_available(db, tenant_id=actor.tenant_id, item_id=line.item_id)
        if requested > available:
            raise InsufficientStockError(
                f"Insufficient stock for {items[line.item_id].name}: "
                f"requested {format_qty(requested)}, available {format_qty(available)}",
                item_id=line.item_id,
            )
        lines.append(
            InternalRequestLine(
                id=generate_id(),
                position=position,
                item_id=line.item_id,
                requested_qty=requested,
                issued_qty=to_qty(0),
                notes=line.notes,
            )
        )

    request = InternalRequest(
        id=generate_id(),
        tenant_id=actor.tenant_id,
        request_number=sequence_service.next_request_number(db, tenant_id=actor.tenant_id),
        status=InternalRequestStatus.PENDING,
        notes=payload.notes,
        created_by_id=actor.user_id,
        has_discrepancy=False,
        lines=lines,
    )
    db.add(request)
    db.flush()
    return request


def fulfill_internal_request(
    db: Session,
    *,
    actor: ActorContext,
    request_id: str,
    payload: InternalRequestFulfillIn,
) -> InternalRequest:
    request = get_internal_request(db, tenant_id=actor.tenant_id, request_id=request_id, for_update=True)
    next_status = INTERNAL_REQUEST_MACHINE.transition(request.status, "fulfill")
    ensure_actor_distinct(
        actor.user_id,
        request.created_by_id,
        message="You cannot fulfill a request you created (segregation of duties)",
    )
    location = catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=payload.location_id)
    ensure_unique_ids([line.id for line in payload.lines], label="request line")

    request_lines = {line.id: line for line in request.lines}
    total_issued = Decimal("0")
    for line in payload.lines:
        request_line = request_lines.get(line.id)
        if request_line is None:
            raise ValidationError(f"Request line {line.id} not found")
        issued = to_qty(line.issued_qty)
        if issued > to_qty(request_line.requested_qty):
            raise ValidationError(
                f"Issued qty ({format_qty(issued)}) exceeds requested qty ({format_qty(request_line.requested_qty)})"
            )
        if issued > 0:
            available = inventory_service.get_position(
                db,
                tenant_id=actor.tenant_id,
                item_id=request_line.item_id,
                location_id=location.id,
            ).quantity
            if available < issued:
                raise InsufficientStockError(
                    f"Insufficient stock at location for item. Available: {format_qty(available)}, "
                    f"requested: {format_qty(issued)}",
                    item_id=request_line.item_id,
                    location_id=location.id,
                )
        total_issued += issued

    if total_issued <= 0:
        raise ValidationError("At least one line must issue a positive quantity")

    reference = InventoryReference(type=ReferenceType.INTERNAL_REQUEST, id=request.id)
    for line in payload.lines:
        request_line = request_lines[line.id]
        issued = to_qty(line.issued_qty)
        request_line.issued_qty = issued
        if line.notes is not None:
            request_line.notes = line.notes
        if issued <= 0:
            continue
        inventory_service.decrease(
            db,
            tenant_id=actor.tenant_id,
            item_id=request_line.item_id,
            location_id=location.id,
            qty=issued,
            txn_type=TransactionType.OUTBOUND,
            reference=reference,
            notes=f"Issued for {request.request_number}",
            actor_id=actor.user_id,
        )

    request.status = next_status
    request.location_id = location.id
    request.fulfilled_by_id = actor.user_id
    request.fulfilled_at = datetime.now(timezone.utc)
    request.notes = append_note(request.notes, payload.notes and f"Fulfillment: {payload.notes}", separator="\n\n")
    db.flush()
    return request


def confirm_internal_request(
    db: Session,
    *,
    actor: ActorContext,
    request_id: str,
    payload: InternalRequestConfirmIn,
) -> InternalRequest:
    """Record what the requester actually got. No stock moves here.

    Lines left out of the payload are confirmed at their issued quantity.
    """
    request = get_internal_request(db, tenant_id=actor.tenant_id, request_id=request_id, for_update=True)
    next_status = INTERNAL_REQUEST_MACHINE.transition(request.status, "confirm")
    if settings.sod_request_confirm:
        ensure_actor_distinct(
            actor.user_id,
            request.fulfilled_by_id,
            message="You cannot confirm a request you fulfilled (segregation of duties)",
        )
    ensure_unique_ids([line.id for line in payload.lines], label="request line")

    request_lines = {line.id: line for line in request.lines}
    confirmed: dict[str, Decimal] = {}
    for line in payload.lines:
        request_line = request_lines.get(line.id)
        if request_line is None:
            raise ValidationError(f"Request line {line.id} not found")
        confirmed_qty = to_qty(line.confirmed_qty)
        if confirmed_qty > to_qty(request_line.issued_qty):
            raise ValidationError(
                f"Confirmed qty ({format_qty(confirmed_qty)}) cannot exceed issued qty "
                f"({format_qty(request_line.issued_qty)})"
            )
        confirmed[line.id] = confirmed_qty

    line_notes = {line.id: line.notes for line in payload.lines}
    has_discrepancy = payload.has_discrepancy
    for request_line in request.lines:
        issued = to_qty(request_line.issued_qty)
        confirmed_qty = confirmed.get(request_line.id, issued)
        request_line.confirmed_qty = confirmed_qty
        if confirmed_qty != issued:
            has_discrepancy = True
        note = line_notes.get(request_line.id)
        if note:
            request_line.notes = append_note(request_line.notes, f"Confirmation: {note}")

    request.status = next_status
    request.confirmed_by_id = actor.user_id
    request.confirmed_at = datetime.now(timezone.utc)
    request.has_discrepancy = has_discrepancy
    if payload.notes or has_discrepancy:
        label = "Confirmation (with discrepancies)" if has_discrepancy else "Confirmation"
        request.notes = append_note(request.notes, f"{label}: {payload.notes or 'Quantities differ from issued'}", separator="\n\n")
    db.flush()
    return request


def cancel_internal_request(
    db: Session,
    *,
    actor: ActorContext,
    request_id: str,
    reason: str | None = None,
) -> InternalRequest:
    request = get_internal_request(db, tenant_id=actor.tenant_id, request_id=request_id, for_update=True)
    request.status = INTERNAL_REQUEST_MACHINE.transition(request.status, "cancel")
    request.notes = append_note(request.notes, f"[Cancelled: {reason or 'No reason given'}]", separator="\n\n")
    db.flush()
    return request
