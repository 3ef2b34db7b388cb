from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session, selectinload

from fnb_erp.core.config import settings
from fnb_erp.core.errors import InvalidStateError, NotFoundError, ValidationError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.money import ZERO_MONEY, to_money, to_qty, to_unit_cost
from fnb_erp.core.permissions import ActorContext
from fnb_erp.core.workflow import StateMachine, append_note, ensure_actor_distinct
from fnb_erp.models.purchase_order import PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatus
from fnb_erp.models.receiving import Receiving, ReceivingStatus
from fnb_erp.models.tenant import Tenant
from fnb_erp.schemas.purchase_order import PurchaseOrderCreateIn, PurchaseOrderLineIn, PurchaseOrderUpdateIn
from fnb_erp.services import catalog_service, sequence_service

RECEIVABLE_STATUSES = (
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.SENT,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
)

PURCHASE_ORDER_MACHINE: StateMachine[PurchaseOrderStatus] = StateMachine(
    name="purchase order",
    table={
        (PurchaseOrderStatus.DRAFT, "edit"): PurchaseOrderStatus.DRAFT,
        (PurchaseOrderStatus.DRAFT, "submit"): PurchaseOrderStatus.PENDING_APPROVAL,
        (PurchaseOrderStatus.PENDING_APPROVAL, "approve"): PurchaseOrderStatus.APPROVED,
        (PurchaseOrderStatus.PENDING_APPROVAL, "reject"): PurchaseOrderStatus.CANCELLED,
        (PurchaseOrderStatus.APPROVED, "send"): PurchaseOrderStatus.SENT,
        (PurchaseOrderStatus.APPROVED, "cancel"): PurchaseOrderStatus.CANCELLED,
        **{(status, "receive_partial"): PurchaseOrderStatus.PARTIALLY_RECEIVED for status in RECEIVABLE_STATUSES},
        **{(status, "receive_full"): PurchaseOrderStatus.RECEIVED for status in RECEIVABLE_STATUSES},
    },
    messages={
        "edit": "Only draft POs can be edited",
        "submit": "Only draft POs can be submitted",
        "approve": "Only pending POs can be approved/rejected",
        "reject": "Only pending POs can be approved/rejected",
        "send": "Only approved POs can be marked as sent",
        "cancel": "Only approved POs can be cancelled",
    },
)

OPEN_RECEIVING_STATUSES = (
    ReceivingStatus.PENDING,
    ReceivingStatus.PROC_VERIFIED,
    ReceivingStatus.QC_APPROVED,
)


def get_purchase_order(
    db: Session,
    *,
    tenant_id: str,
    purchase_order_id: str,
    for_update: bool = False,
) -> PurchaseOrder:
    stmt = (
        select(PurchaseOrder)
        .where(PurchaseOrder.id == purchase_order_id, PurchaseOrder.tenant_id == tenant_id)
        .options(selectinload(PurchaseOrder.lines))
    )
    if for_update:
        stmt = stmt.with_for_update(of=PurchaseOrder)
    po = db.execute(stmt).scalar_one_or_none()
    if not po:
        raise NotFoundError("Purchase order not found")
    return po


def list_purchase_orders(
    db: Session,
    *,
    tenant_id: str,
    statuses: list[PurchaseOrderStatus] | None = None,
    supplier_id: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[PurchaseOrder], int]:
    filters = [PurchaseOrder.tenant_id == tenant_id]
    if statuses:
        filters.append(PurchaseOrder.status.in_(statuses))
    if supplier_id:
        filters.append(PurchaseOrder.supplier_id == supplier_id)
    if search and search.strip():
        filters.append(func.lower(PurchaseOrder.po_number).contains(search.strip().lower()))

    total = int(db.execute(select(func.count(PurchaseOrder.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(PurchaseOrder)
        .where(*filters)
        .options(selectinload(PurchaseOrder.lines))
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


def _build_lines(db: Session, *, tenant_id: str, lines: list[PurchaseOrderLineIn]) -> list[PurchaseOrderLine]:
    catalog_service.get_items(db, tenant_id=tenant_id, item_ids=[line.item_id for line in lines])
    built: list[PurchaseOrderLine] = []
    for position, line in enumerate(lines):
        quantity = to_qty(line.quantity)
        unit_cost = to_unit_cost(line.unit_cost)
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive number")
        if unit_cost <= 0:
            raise ValidationError("Unit cost must be a positive number")
        built.append(
            PurchaseOrderLine(
                id=generate_id(),
                position=position,
                item_id=line.item_id,
                quantity=quantity,
                unit_cost=unit_cost,
                total_cost=to_money(quantity * unit_cost),
                received_qty=to_qty(0),
                notes=line.notes,
            )
        )
    return built


def _order_total(lines: list[PurchaseOrderLine]) -> Decimal:
    return to_money(sum((line.total_cost for line in lines), ZERO_MONEY))


def create_purchase_order(db: Session, *, actor: ActorContext, payload: PurchaseOrderCreateIn) -> PurchaseOrder:
    catalog_service.get_supplier(db, tenant_id=actor.tenant_id, supplier_id=payload.supplier_id)
    lines = _build_lines(db, tenant_id=actor.tenant_id, lines=payload.lines)

    currency = payload.currency
    if not currency:
        tenant = db.get(Tenant, actor.tenant_id)
        currency = tenant.base_currency if tenant else settings.default_currency

    po = PurchaseOrder(
        id=generate_id(),
        tenant_id=actor.tenant_id,
        po_number=sequence_service.next_po_number(db, tenant_id=actor.tenant_id),
        supplier_id=payload.supplier_id,
        status=PurchaseOrderStatus.DRAFT,
        total_amount=_order_total(lines),
        currency=currency,
        expected_date=payload.expected_date,
        notes=payload.notes,
        created_by_id=actor.user_id,
        lines=lines,
    )
    db.add(po)
    db.flush()
    return po


def update_purchase_order(
    db: Session,
    *,
    actor: ActorContext,
    purchase_order_id: str,
    payload: PurchaseOrderUpdateIn,
) -> PurchaseOrder:
    po = get_purchase_order(db, tenant_id=actor.tenant_id, purchase_order_id=purchase_order_id, for_update=True)
    po.status = PURCHASE_ORDER_MACHINE.transition(po.status, "edit")

    fields_set = payload.model_fields_set
    if "supplier_id" in fields_set:
        if not payload.supplier_id:
            raise ValidationError("Supplier is required")
        catalog_service.get_supplier(db, tenant_id=actor.tenant_id, supplier_id=payload.supplier_id)
        po.supplier_id = payload.supplier_id
    if "expected_date" in fields_set:
        po.expected_date = payload.expected_date
    if "notes" in fields_set:
        po.notes = payload.notes
    if "lines" in fields_set:
        if not payload.lines:
            raise ValidationError("At least one line item is required")
        po.lines = _build_lines(db, tenant_id=actor.tenant_id, lines=payload.lines)
        po.total_amount = _order_total(po.lines)

    db.flush()
    return po


def submit_purchase_order(db: Session, *, actor: ActorContext, purchase_order_id: str) -> PurchaseOrder:
    po = get_purchase_order(db, tenant_id=actor.tenant_id, purchase_order_id=purchase_order_id, for_update=True)
    next_status = PURCHASE_ORDER_MACHINE.transition(po.status, "submit")
    if not po.lines:
        raise ValidationError("PO must have at least one line item")
    po.status = next_status
    db.flush()
    return po


def approve_purchase_order(
    db: Session,
    *,
    actor: ActorContext,
    purchase_order_id: str,
    action: str,
    reason: str | None = None,
) -> PurchaseOrder:
    """Approve or reject a submitted PO. The creator can never decide on their own order."""
    if action not in {"approve", "reject"}:
        raise ValidationError("Action must be 'approve' or 'reject'")
    po = get_purchase_order(db, tenant_id=actor.tenant_id, purchase_order_id=purchase_order_id, for_update=True)
    next_status = PURCHASE_ORDER_MACHINE.transition(po.status, action)
    ensure_actor_distinct(
        actor.user_id,
        po.created_by_id,
        message="You cannot approve your own purchase order",
    )

    po.status = next_status
    if action == "approve":
        po.approved_by_id = actor.user_id
        po.approved_at = datetime.now(timezone.utc)
    else:
        po.notes = append_note(po.notes, f"[Rejected: {reason or 'No reason given'}]")
    db.flush()
    return po


def send_purchase_order(db: Session, *, actor: ActorContext, purchase_order_id: str) -> PurchaseOrder:
    po = get_purchase_order(db, tenant_id=actor.tenant_id, purchase_order_id=purchase_order_id, for_update=True)
    po.status = PURCHASE_ORDER_MACHINE.transition(po.status, "send")
    db.flush()
    return po


def cancel_purchase_order(
    db: Session,
    *,
    actor: ActorContext,
    purchase_order_id: str,
    reason: str | None = None,
) -> PurchaseOrder:
    po = get_purchase_order(db, tenant_id=actor.tenant_id, purchase_order_id=purchase_order_id, for_update=True)
    next_status = PURCHASE_ORDER_MACHINE.transition(po.status, "cancel")
    ensure_actor_distinct(
        actor.user_id,
        po.created_by_id,
        message="You cannot cancel your own purchase order",
    )
    has_open_receiving = db.execute(
        select(
            exists().where(
                Receiving.tenant_id == actor.tenant_id,
                Receiving.purchase_order_id == po.id,
                Receiving.status.in_(OPEN_RECEIVING_STATUSES),
            )
        )
    ).scalar_one()
    if has_open_receiving:
        raise InvalidStateError("Cannot cancel a purchase order with receivings in progress")

    po.status = next_status
    po.notes = append_note(po.notes, f"[Cancelled: {reason or 'No reason given'}]")
    db.flush()
    return po


def apply_receipt(po: PurchaseOrder) -> PurchaseOrderStatus:
    """Move a PO to RECEIVED or PARTIALLY_RECEIVED from its line receipts."""
    if all(line.received_qty >= line.quantity for line in po.lines):
        po.status = PURCHASE_ORDER_MACHINE.transition(po.status, "receive_full")
    elif any(line.received_qty > 0 for line in po.lines):
        po.status = PURCHASE_ORDER_MACHINE.transition(po.status, "receive_partial")
    return po.status


def ensure_receivable(po: PurchaseOrder) -> None:
    if po.status not in RECEIVABLE_STATUSES:
        raise InvalidStateError("PO must be approved or sent before receiving")

