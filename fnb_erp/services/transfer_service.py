from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from fnb_erp.core.config import settings
from fnb_erp.core.errors import InsufficientStockError, NotFoundError, ValidationError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.money import format_qty, to_money, to_qty, to_unit_cost
from fnb_erp.core.permissions import ActorContext
from fnb_erp.core.workflow import StateMachine, append_note, ensure_actor_distinct, ensure_unique_ids
from fnb_erp.models.inventory import InventoryReference, ReferenceType, TransactionType
from fnb_erp.models.transfer import Transfer, TransferLine, TransferStatus
from fnb_erp.schemas.transfer import TransferCreateIn, TransferReceiveIn
from fnb_erp.services import catalog_service, inventory_service, sequence_service

TRANSFER_MACHINE: StateMachine[TransferStatus] = StateMachine(
    name="transfer",
    table={
        (TransferStatus.PENDING, "approve"): TransferStatus.APPROVED,
        (TransferStatus.PENDING, "reject"): TransferStatus.CANCELLED,
        (TransferStatus.APPROVED, "fulfill"): TransferStatus.IN_TRANSIT,
        (TransferStatus.IN_TRANSIT, "receive"): TransferStatus.RECEIVED,
    },
    messages={
        "approve": "Transfer must be in Pending status for approval",
        "reject": "Transfer must be in Pending status for approval",
        "fulfill": "Transfer must be Approved for fulfillment",
        "receive": "Transfer must be In Transit for receiving",
    },
)


def get_transfer(db: Session, *, tenant_id: str, transfer_id: str, for_update: bool = False) -> Transfer:
    stmt = (
        select(Transfer)
        .where(Transfer.id == transfer_id, Transfer.tenant_id == tenant_id)
        .options(selectinload(Transfer.lines))
    )
    if for_update:
        stmt = stmt.with_for_update(of=Transfer)
    transfer = db.execute(stmt).scalar_one_or_none()
    if not transfer:
        raise NotFoundError("Transfer not found")
    return transfer


def list_transfers(
    db: Session,
    *,
    tenant_id: str,
    statuses: list[TransferStatus] | None = None,
    location_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Transfer], int]:
    filters = [Transfer.tenant_id == tenant_id]
    if statuses:
        filters.append(Transfer.status.in_(statuses))
    if location_id:
        filters.append(or_(Transfer.from_location_id == location_id, Transfer.to_location_id == location_id))

    total = int(db.execute(select(func.count(Transfer.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(Transfer)
        .where(*filters)
        .options(selectinload(Transfer.lines))
        .order_by(Transfer.created_at.desc(), Transfer.transfer_number.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


def _ensure_source_stock(
    db: Session,
    *,
    tenant_id: str,
    location_id: str,
    quantities: dict[str, Decimal],
    item_names: dict[str, str] | None = None,
) -> None:
    for item_id, needed in quantities.items():
        available = inventory_service.get_position(
            db,
            tenant_id=tenant_id,
            item_id=item_id,
            location_id=location_id,
        ).quantity
        if available < needed:
            label = (item_names or {}).get(item_id, item_id)
            raise InsufficientStockError(
                f"Insufficient stock for {label} at source location. "
                f"Available: {format_qty(available)}, requested: {format_qty(needed)}",
                item_id=item_id,
                location_id=location_id,
            )


def _quantities_by_item(lines) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for line in lines:
        totals[line.item_id] += to_qty(line.quantity)
    return dict(totals)


def requires_approval(value: Decimal) -> bool:
    """Transfers worth more than the threshold wait for a second person.

    ``value`` is the unrounded sum of quantity x unit cost, compared before
    any rounding to cents.
    """
    return value > to_money(settings.transfer_approval_threshold)


def _format_value(value: Decimal) -> str:
    money = to_money(value)
    return f"{money if money == value else value.normalize():f}"


def create_transfer(db: Session, *, actor: ActorContext, payload: TransferCreateIn) -> Transfer:
    if payload.from_location_id == payload.to_location_id:
        raise ValidationError("Source and destination must be different")
    source = catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=payload.from_location_id)
    destination = catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=payload.to_location_id)
    items = catalog_service.get_items(db, tenant_id=actor.tenant_id, item_ids=[line.item_id for line in payload.lines])

    for line in payload.lines:
        if to_qty(line.quantity) <= 0:
            raise ValidationError("Each line must have an item and positive quantity")
    _ensure_source_stock(
        db,
        tenant_id=actor.tenant_id,
        location_id=source.id,
        quantities=_quantities_by_item(payload.lines),
        item_names={item_id: item.name for item_id, item in items.items()},
    )

    lines: list[TransferLine] = []
    raw_value = Decimal("0")
    for position, line in enumerate(payload.lines):
        quantity = to_qty(line.quantity)
        unit_cost = to_unit_cost(
            inventory_service.get_position(
                db,
                tenant_id=actor.tenant_id,
                item_id=line.item_id,
                location_id=source.id,
            ).average_cost
        )
        raw_value += quantity * unit_cost
        lines.append(
            TransferLine(
                id=generate_id(),
                position=position,
                item_id=line.item_id,
                quantity=quantity,
                received_qty=to_qty(0),
                unit_cost=unit_cost,
                notes=line.notes,
            )
        )
    estimated_value = to_money(raw_value)

    notes = payload.notes
    if requires_approval(raw_value):
        status = TransferStatus.PENDING
        notes = append_note(
            notes,
            f"[Auto: Requires approval - value {_format_value(raw_value)} exceeds threshold "
            f"{to_money(settings.transfer_approval_threshold)}]",
        )
    else:
        status = TransferStatus.APPROVED

    transfer = Transfer(
        id=generate_id(),
        tenant_id=actor.tenant_id,
        transfer_number=sequence_service.next_transfer_number(db, tenant_id=actor.tenant_id),
        from_location_id=source.id,
        to_location_id=destination.id,
        status=status,
        estimated_value=estimated_value,
        notes=notes,
        created_by_id=actor.user_id,
        lines=lines,
    )
    db.add(transfer)
    db.flush()
    return transfer


def approve_transfer(
    db: Session,
    *,
    actor: ActorContext,
    transfer_id: str,
    action: str,
    reason: str | None = None,
) -> Transfer:
    if action not in {"approve", "reject"}:
        raise ValidationError("Action must be 'approve' or 'reject'")
    transfer = get_transfer(db, tenant_id=actor.tenant_id, transfer_id=transfer_id, for_update=True)
    next_status = TRANSFER_MACHINE.transition(transfer.status, action)
    ensure_actor_distinct(
        actor.user_id,
        transfer.created_by_id,
        message="You cannot approve a transfer you created",
    )

    transfer.status = next_status
    if action == "approve":
        transfer.approved_by_id = actor.user_id
        transfer.approved_at = datetime.now(timezone.utc)
    else:
        transfer.notes = append_note(
            transfer.notes,
            f"Rejected: {reason or 'No reason provided'}",
            separator="\n\n",
        )
    db.flush()
    return transfer


def fulfill_transfer(db: Session, *, actor: ActorContext, transfer_id: str, notes: str | None = None) -> Transfer:
    """Ship the goods: stock leaves the source location now."""
    transfer = get_transfer(db, tenant_id=actor.tenant_id, transfer_id=transfer_id, for_update=True)
    next_status = TRANSFER_MACHINE.transition(transfer.status, "fulfill")
    if settings.sod_transfer_fulfill:
        ensure_actor_distinct(
            actor.user_id,
            transfer.created_by_id,
            transfer.approved_by_id,
            message="You cannot fulfill a transfer you created or approved (segregation of duties)",
        )
    _ensure_source_stock(
        db,
        tenant_id=actor.tenant_id,
        location_id=transfer.from_location_id,
        quantities=_quantities_by_item(transfer.lines),
    )

    reference = InventoryReference(type=ReferenceType.TRANSFER, id=transfer.id)
    for line in transfer.lines:
        inventory_service.decrease(
            db,
            tenant_id=actor.tenant_id,
            item_id=line.item_id,
            location_id=transfer.from_location_id,
            qty=line.quantity,
            txn_type=TransactionType.TRANSFER_OUT,
            reference=reference,
            notes=f"Transfer out for {transfer.transfer_number}",
            actor_id=actor.user_id,
        )

    transfer.status = next_status
    transfer.fulfilled_by_id = actor.user_id
    transfer.fulfilled_at = datetime.now(timezone.utc)
    transfer.notes = append_note(transfer.notes, notes and f"Fulfillment: {notes}", separator="\n\n")
    db.flush()
    return transfer


def receive_transfer(db: Session, *, actor: ActorContext, transfer_id: str, payload: TransferReceiveIn) -> Transfer:
    """Book received quantities at the destination at the cost they left the source with.

    Lines left out of the payload are recorded as nothing received.
    """
    transfer = get_transfer(db, tenant_id=actor.tenant_id, transfer_id=transfer_id, for_update=True)
    next_status = TRANSFER_MACHINE.transition(transfer.status, "receive")
    ensure_unique_ids([line.id for line in payload.lines], label="transfer line")

    transfer_lines = {line.id: line for line in transfer.lines}
    for line in payload.lines:
        transfer_line = transfer_lines.get(line.id)
        if transfer_line is None:
            raise ValidationError(f"Transfer line {line.id} not found")
        received = to_qty(line.received_qty)
        if received > to_qty(transfer_line.quantity):
            raise ValidationError(
                f"Received qty ({format_qty(received)}) cannot exceed shipped qty "
                f"({format_qty(transfer_line.quantity)})"
            )

    reference = InventoryReference(type=ReferenceType.TRANSFER, id=transfer.id)
    for line in payload.lines:
        transfer_line = transfer_lines[line.id]
        received = to_qty(line.received_qty)
        transfer_line.received_qty = received
        if line.notes is not None:
            transfer_line.notes = line.notes
        if received <= 0:
            continue
        inventory_service.increase(
            db,
            tenant_id=actor.tenant_id,
            item_id=transfer_line.item_id,
            location_id=transfer.to_location_id,
            qty=received,
            unit_cost=transfer_line.unit_cost,
            txn_type=TransactionType.TRANSFER_IN,
            reference=reference,
            notes=f"Transfer in from {transfer.transfer_number}",
            actor_id=actor.user_id,
        )

    transfer.status = next_status
    transfer.received_by_id = actor.user_id
    transfer.received_at = datetime.now(timezone.utc)
    transfer.notes = append_note(transfer.notes, payload.notes and f"Receipt: {payload.notes}", separator="\n\n")
    db.flush()
    return transfer
