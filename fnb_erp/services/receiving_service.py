"""
Three-stage goods receiving against a purchase order.

1. Procurement verifies what physically arrived (PROC_VERIFIED).
2. QC splits every received quantity into accepted and rejected
   (QC_APPROVED or QC_REJECTED).
3. The warehouse books accepted quantities into stock at a location
   (RECEIVED), updating the PO's received quantities and status.

Each stage must be performed by a different person, and nobody who created
the PO may verify its deliveries.
"""
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from fnb_erp.core.errors import NotFoundError, ValidationError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.money import ZERO_QTY, format_qty, to_qty
from fnb_erp.core.permissions import ActorContext
from fnb_erp.core.workflow import StateMachine, append_note, ensure_actor_distinct, ensure_unique_ids
from fnb_erp.models.inventory import InventoryReference, ReferenceType, TransactionType
from fnb_erp.models.receiving import QCResult, Receiving, ReceivingLine, ReceivingStatus
from fnb_erp.schemas.receiving import QCInspectIn, ReceivingCreateIn, WarehouseReceiveIn
from fnb_erp.services import catalog_service, inventory_service, purchase_order_service, sequence_service

RECEIVING_MACHINE: StateMachine[ReceivingStatus] = StateMachine(
    name="receiving",
    table={
        (ReceivingStatus.PENDING, "proc_verify"): ReceivingStatus.PROC_VERIFIED,
        (ReceivingStatus.PROC_VERIFIED, "qc_accept"): ReceivingStatus.QC_APPROVED,
        (ReceivingStatus.PROC_VERIFIED, "qc_reject"): ReceivingStatus.QC_REJECTED,
        (ReceivingStatus.QC_APPROVED, "warehouse_receive"): ReceivingStatus.RECEIVED,
        (ReceivingStatus.PROC_VERIFIED, "cancel"): ReceivingStatus.CANCELLED,
        (ReceivingStatus.QC_APPROVED, "cancel"): ReceivingStatus.CANCELLED,
    },
    messages={
        "qc_accept": "Receiving must be in Procurement Verified status for QC inspection",
        "qc_reject": "Receiving must be in Procurement Verified status for QC inspection",
        "warehouse_receive": "Receiving must be QC Approved for warehouse receiving",
        "cancel": "Only receivings awaiting QC or warehouse receipt can be cancelled",
    },
)


def get_receiving(db: Session, *, tenant_id: str, receiving_id: str, for_update: bool = False) -> Receiving:
    stmt = (
        select(Receiving)
        .where(Receiving.id == receiving_id, Receiving.tenant_id == tenant_id)
        .options(selectinload(Receiving.lines))
    )
    if for_update:
        stmt = stmt.with_for_update(of=Receiving)
    receiving = db.execute(stmt).scalar_one_or_none()
    if not receiving:
        raise NotFoundError("Receiving record not found")
    return receiving


def list_receivings(
    db: Session,
    *,
    tenant_id: str,
    statuses: list[ReceivingStatus] | None = None,
    purchase_order_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Receiving], int]:
    filters = [Receiving.tenant_id == tenant_id]
    if statuses:
        filters.append(Receiving.status.in_(statuses))
    if purchase_order_id:
        filters.append(Receiving.purchase_order_id == purchase_order_id)

    total = int(db.execute(select(func.count(Receiving.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(Receiving)
        .where(*filters)
        .options(selectinload(Receiving.lines))
        .order_by(Receiving.created_at.desc(), Receiving.receiving_number.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


def proc_verify(db: Session, *, actor: ActorContext, payload: ReceivingCreateIn) -> Receiving:
    po = purchase_order_service.get_purchase_order(
        db,
        tenant_id=actor.tenant_id,
        purchase_order_id=payload.purchase_order_id,
        for_update=True,
    )
    purchase_order_service.ensure_receivable(po)
    ensure_actor_distinct(
        actor.user_id,
        po.created_by_id,
        message="You cannot verify a PO that you created (segregation of duties)",
    )
    ensure_unique_ids([line.purchase_order_line_id for line in payload.lines], label="purchase order line")

    po_lines = {line.id: line for line in po.lines}
    receiving_lines: list[ReceivingLine] = []
    for position, line in enumerate(payload.lines):
        po_line = po_lines.get(line.purchase_order_line_id)
        if po_line is None:
            raise ValidationError(f"Line {line.purchase_order_line_id} is not part of this purchase order")
        received_qty = to_qty(line.received_qty)
        if received_qty <= 0:
            raise ValidationError("Received quantity must be a positive number")
        if received_qty > po_line.outstanding_qty:
            raise ValidationError(
                f"Received qty ({format_qty(received_qty)}) exceeds outstanding qty "
                f"({format_qty(po_line.outstanding_qty)}) for item {po_line.item_id}"
            )
        receiving_lines.append(
            ReceivingLine(
                id=generate_id(),
                purchase_order_line_id=po_line.id,
                position=position,
                item_id=po_line.item_id,
                expected_qty=po_line.quantity,
                received_qty=received_qty,
                accepted_qty=ZERO_QTY,
                rejected_qty=ZERO_QTY,
                unit_cost=po_line.unit_cost,
                notes=line.notes,
            )
        )

    receiving = Receiving(
        id=generate_id(),
        tenant_id=actor.tenant_id,
        receiving_number=sequence_service.next_receiving_number(db, tenant_id=actor.tenant_id),
        purchase_order_id=po.id,
        status=RECEIVING_MACHINE.transition(ReceivingStatus.PENDING, "proc_verify"),
        proc_verified_by_id=actor.user_id,
        proc_verified_at=datetime.now(timezone.utc),
        proc_notes=payload.notes,
        lines=receiving_lines,
    )
    db.add(receiving)
    db.flush()
    return receiving


def qc_inspect(db: Session, *, actor: ActorContext, receiving_id: str, payload: QCInspectIn) -> Receiving:
    receiving = get_receiving(db, tenant_id=actor.tenant_id, receiving_id=receiving_id, for_update=True)
    action = "qc_reject" if payload.qc_result == QCResult.REJECTED else "qc_accept"
    next_status = RECEIVING_MACHINE.transition(receiving.status, action)
    ensure_actor_distinct(
        actor.user_id,
        receiving.proc_verified_by_id,
        message="You cannot inspect a receiving that you verified (segregation of duties)",
    )
    ensure_unique_ids([line.id for line in payload.lines], label="receiving line")

    receiving_lines = {line.id: line for line in receiving.lines}
    inspected = {line.id for line in payload.lines}
    unknown = [line_id for line_id in inspected if line_id not in receiving_lines]
    if unknown:
        raise ValidationError(f"Receiving line {unknown[0]} not found")
    missing = [line.id for line in receiving.lines if line.id not in inspected]
    if missing:
        raise ValidationError(f"Receiving line {missing[0]} has no inspection result")

    total_accepted = Decimal("0")
    for line in payload.lines:
        receiving_line = receiving_lines[line.id]
        accepted = to_qty(line.accepted_qty)
        rejected = to_qty(line.rejected_qty)
        if accepted + rejected != to_qty(receiving_line.received_qty):
            raise ValidationError(
                f"Accepted ({format_qty(accepted)}) + Rejected ({format_qty(rejected)}) "
                f"must equal Received ({format_qty(receiving_line.received_qty)}) for each line"
            )
        total_accepted += accepted

    if payload.qc_result != QCResult.REJECTED and total_accepted == 0:
        raise ValidationError(
            f"Cannot mark as {payload.qc_result.value} when no items are accepted. Use REJECTED instead."
        )

    for line in payload.lines:
        receiving_line = receiving_lines[line.id]
        receiving_line.accepted_qty = to_qty(line.accepted_qty)
        receiving_line.rejected_qty = to_qty(line.rejected_qty)
        receiving_line.notes = append_note(receiving_line.notes, line.notes and f"QC: {line.notes}")

    receiving.status = next_status
    receiving.qc_inspected_by_id = actor.user_id
    receiving.qc_inspected_at = datetime.now(timezone.utc)
    receiving.qc_result = payload.qc_result
    receiving.qc_notes = payload.notes
    db.flush()
    return receiving


def warehouse_receive(
    db: Session,
    *,
    actor: ActorContext,
    receiving_id: str,
    payload: WarehouseReceiveIn,
) -> Receiving:
    """Book accepted quantities into stock and roll receipts up to the PO."""
    receiving = get_receiving(db, tenant_id=actor.tenant_id, receiving_id=receiving_id, for_update=True)
    next_status = RECEIVING_MACHINE.transition(receiving.status, "warehouse_receive")
    ensure_actor_distinct(
        actor.user_id,
        receiving.proc_verified_by_id,
        message="You cannot receive items that you verified (segregation of duties)",
    )
    ensure_actor_distinct(
        actor.user_id,
        receiving.qc_inspected_by_id,
        message="You cannot receive items that you inspected (segregation of duties)",
    )
    location = catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=payload.location_id)

    po = purchase_order_service.get_purchase_order(
        db,
        tenant_id=actor.tenant_id,
        purchase_order_id=receiving.purchase_order_id,
        for_update=True,
    )
    po_lines = {line.id: line for line in po.lines}
    reference = InventoryReference(type=ReferenceType.RECEIVING, id=receiving.id)

    for line in receiving.lines:
        accepted = to_qty(line.accepted_qty)
        if accepted <= 0:
            continue
        po_line = po_lines[line.purchase_order_line_id]
        new_received = to_qty(po_line.received_qty) + accepted
        if new_received > to_qty(po_line.quantity):
            raise ValidationError(
                f"Receiving {format_qty(accepted)} of item {line.item_id} would exceed the ordered "
                f"quantity ({format_qty(po_line.quantity)}, already received {format_qty(po_line.received_qty)})"
            )
        inventory_service.increase(
            db,
            tenant_id=actor.tenant_id,
            item_id=line.item_id,
            location_id=location.id,
            qty=accepted,
            unit_cost=line.unit_cost,
            txn_type=TransactionType.INBOUND,
            reference=reference,
            notes=f"Received via {receiving.receiving_number}",
            actor_id=actor.user_id,
        )
        po_line.received_qty = new_received

    purchase_order_service.apply_receipt(po)

    receiving.status = next_status
    receiving.warehouse_received_by_id = actor.user_id
    receiving.warehouse_received_at = datetime.now(timezone.utc)
    receiving.location_id = location.id
    receiving.batch_number = payload.batch_number
    receiving.warehouse_notes = payload.notes
    db.flush()
    return receiving


def cancel_receiving(
    db: Session,
    *,
    actor: ActorContext,
    receiving_id: str,
    reason: str | None = None,
) -> Receiving:
    receiving = get_receiving(db, tenant_id=actor.tenant_id, receiving_id=receiving_id, for_update=True)
    receiving.status = RECEIVING_MACHINE.transition(receiving.status, "cancel")
    receiving.warehouse_notes = append_note(
        receiving.warehouse_notes,
        f"[Cancelled by {actor.full_name or actor.user_id}: {reason or 'No reason given'}]",
    )
    db.flush()
    return receiving
