"""
Inventory ledger: the only code that writes InventoryPosition rows.

Every movement changes a position and appends an InventoryTransaction in the
caller's transaction. Nothing here commits; the HTTP layer commits once per
operation so a workflow's line mutations and status change land together.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from fnb_erp.core.errors import InsufficientStockError, ValidationError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.observability import log_event
from fnb_erp.core.money import ZERO_QTY, format_qty, to_money, to_qty, to_unit_cost, weighted_average_cost
from fnb_erp.db.upsert import insert_if_absent
from fnb_erp.models.catalog import Category, Item, Location
from fnb_erp.models.inventory import (
    DECREASE_TYPES,
    INCREASE_TYPES,
    InventoryPosition,
    InventoryReference,
    InventoryTransaction,
    ReferenceType,
    TransactionType,
)

logger = logging.getLogger("fnb_erp.inventory")


@dataclass(frozen=True)
class PositionSnapshot:
    quantity: Decimal
    average_cost: Decimal

    @property
    def value(self) -> Decimal:
        return to_money(self.quantity * self.average_cost)


@dataclass(frozen=True)
class ValuationBucket:
    id: str | None
    name: str
    quantity: Decimal
    value: Decimal
    positions: int


@dataclass(frozen=True)
class ValuationReport:
    group_by: str
    total_quantity: Decimal
    total_value: Decimal
    buckets: list[ValuationBucket]


def _position_filter(tenant_id: str, item_id: str, location_id: str):
    return (
        InventoryPosition.tenant_id == tenant_id,
        InventoryPosition.item_id == item_id,
        InventoryPosition.location_id == location_id,
    )


def _locked_position(db: Session, *, tenant_id: str, item_id: str, location_id: str) -> InventoryPosition | None:
    return db.execute(
        select(InventoryPosition)
        .where(*_position_filter(tenant_id, item_id, location_id))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _log_movement(entry: InventoryTransaction, position: InventoryPosition) -> None:
    log_event(
        logger,
        logging.DEBUG,
        "inventory_movement",
        tenant_id=entry.tenant_id,
        item_id=entry.item_id,
        location_id=entry.location_id,
        type=entry.type.value,
        qty_delta=entry.qty_delta,
        unit_cost=entry.unit_cost,
        reference_type=entry.reference_type.value,
        reference_id=entry.reference_id,
        position_quantity=position.quantity,
        position_average_cost=position.average_cost,
    )


def _append_transaction(
    db: Session,
    *,
    tenant_id: str,
    item_id: str,
    location_id: str,
    txn_type: TransactionType,
    qty: Decimal,
    qty_delta: Decimal,
    unit_cost: Decimal | None,
    reference: InventoryReference,
    notes: str | None,
    actor_id: str | None,
) -> InventoryTransaction:
    entry = InventoryTransaction(
        id=generate_id(),
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        type=txn_type,
        quantity=qty,
        qty_delta=qty_delta,
        unit_cost=unit_cost,
        reference_type=reference.type,
        reference_id=reference.id,
        notes=notes,
        created_by_id=actor_id,
    )
    db.add(entry)
    return entry


def get_position(db: Session, *, tenant_id: str, item_id: str, location_id: str) -> PositionSnapshot:
    """Current quantity and average cost; a missing row reads as an empty position."""
    row = db.execute(
        select(InventoryPosition.quantity, InventoryPosition.average_cost).where(
            *_position_filter(tenant_id, item_id, location_id)
        )
    ).first()
    if row is None:
        return PositionSnapshot(quantity=ZERO_QTY, average_cost=to_unit_cost(0))
    return PositionSnapshot(quantity=to_qty(row.quantity), average_cost=to_unit_cost(row.average_cost))


def increase(
    db: Session,
    *,
    tenant_id: str,
    item_id: str,
    location_id: str,
    qty: Decimal,
    unit_cost: Decimal,
    txn_type: TransactionType,
    reference: InventoryReference,
    notes: str | None = None,
    actor_id: str | None = None,
) -> InventoryTransaction:
    if txn_type not in INCREASE_TYPES:
        raise ValueError(f"{txn_type.value} cannot increase stock")
    qty = to_qty(qty)
    if qty <= 0:
        raise ValidationError("Quantity must be greater than zero")
    unit_cost = to_unit_cost(unit_cost)
    if unit_cost < 0:
        raise ValidationError("Unit cost cannot be negative")

    position = _locked_position(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id)
    if position is None:
        insert_if_absent(
            db,
            InventoryPosition,
            values={
                "id": generate_id(),
                "tenant_id": tenant_id,
                "item_id": item_id,
                "location_id": location_id,
                "quantity": ZERO_QTY,
                "average_cost": to_unit_cost(0),
            },
            index_elements=["tenant_id", "item_id", "location_id"],
        )
        position = _locked_position(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id)
        if position is None:
            raise RuntimeError(f"Inventory position for item {item_id} at {location_id} vanished under lock")

    current_qty = to_qty(position.quantity)
    position.average_cost = weighted_average_cost(
        current_qty,
        to_unit_cost(position.average_cost),
        qty,
        unit_cost,
    )
    position.quantity = current_qty + qty

    entry = _append_transaction(
        db,
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        txn_type=txn_type,
        qty=qty,
        qty_delta=qty,
        unit_cost=unit_cost,
        reference=reference,
        notes=notes,
        actor_id=actor_id,
    )
    db.flush()
    _log_movement(entry, position)
    return entry


def decrease(
    db: Session,
    *,
    tenant_id: str,
    item_id: str,
    location_id: str,
    qty: Decimal,
    txn_type: TransactionType,
    reference: InventoryReference,
    notes: str | None = None,
    actor_id: str | None = None,
) -> InventoryTransaction:
    """Take stock out with a single guarded UPDATE.

    The ``quantity >= qty`` predicate makes the check and the decrement one
    atomic statement, so two concurrent withdrawals can never overdraw the
    position. Average cost is unchanged by outbound movements.
    """
    if txn_type not in DECREASE_TYPES:
        raise ValueError(f"{txn_type.value} cannot decrease stock")
    qty = to_qty(qty)
    if qty <= 0:
        raise ValidationError("Quantity must be greater than zero")

    result = db.execute(
        update(InventoryPosition)
        .where(
            *_position_filter(tenant_id, item_id, location_id),
            InventoryPosition.quantity >= qty,
        )
        .values(quantity=InventoryPosition.quantity - qty)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        available = get_position(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id).quantity
        raise InsufficientStockError(
            f"Insufficient stock for item {item_id} at location {location_id}: "
            f"available {format_qty(available)}, requested {format_qty(qty)}",
            item_id=item_id,
            location_id=location_id,
        )

    position = _locked_position(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id)
    if position is None:
        raise RuntimeError(f"Inventory position for item {item_id} at {location_id} vanished under lock")

    entry = _append_transaction(
        db,
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        txn_type=txn_type,
        qty=qty,
        qty_delta=-qty,
        unit_cost=to_unit_cost(position.average_cost),
        reference=reference,
        notes=notes,
        actor_id=actor_id,
    )
    db.flush()
    _log_movement(entry, position)
    return entry


def adjust(
    db: Session,
    *,
    tenant_id: str,
    item_id: str,
    location_id: str,
    qty_delta: Decimal,
    reason: str,
    unit_cost: Decimal | None = None,
    actor_id: str | None = None,
) -> InventoryTransaction:
    """Manual correction; positive deltas add stock, negative deltas remove it."""
    qty_delta = to_qty(qty_delta)
    if qty_delta == 0:
        raise ValidationError("Adjustment quantity cannot be zero")
    reference = InventoryReference(type=ReferenceType.ADJUSTMENT)

    if qty_delta > 0:
        if unit_cost is None:
            unit_cost = get_position(
                db, tenant_id=tenant_id, item_id=item_id, location_id=location_id
            ).average_cost
        return increase(
            db,
            tenant_id=tenant_id,
            item_id=item_id,
            location_id=location_id,
            qty=qty_delta,
            unit_cost=unit_cost,
            txn_type=TransactionType.ADJUSTMENT,
            reference=reference,
            notes=reason,
            actor_id=actor_id,
        )

    return decrease(
        db,
        tenant_id=tenant_id,
        item_id=item_id,
        location_id=location_id,
        qty=-qty_delta,
        txn_type=TransactionType.ADJUSTMENT,
        reference=reference,
        notes=reason,
        actor_id=actor_id,
    )


def total_available(db: Session, *, tenant_id: str, item_id: str) -> Decimal:
    q = select(func.coalesce(func.sum(InventoryPosition.quantity), 0)).where(
        InventoryPosition.tenant_id == tenant_id,
        InventoryPosition.item_id == item_id,
    )
    return to_qty(db.execute(q).scalar_one())


def ledger_quantity(db: Session, *, tenant_id: str, item_id: str, location_id: str) -> Decimal:
    """Quantity rebuilt from the transaction log; equals the position quantity."""
    q = select(func.coalesce(func.sum(InventoryTransaction.qty_delta), 0)).where(
        InventoryTransaction.tenant_id == tenant_id,
        InventoryTransaction.item_id == item_id,
        InventoryTransaction.location_id == location_id,
    )
    return to_qty(db.execute(q).scalar_one())


def list_positions(
    db: Session,
    *,
    tenant_id: str,
    location_id: str | None = None,
    item_id: str | None = None,
    include_empty: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[InventoryPosition], int]:
    filters = [InventoryPosition.tenant_id == tenant_id]
    if location_id:
        filters.append(InventoryPosition.location_id == location_id)
    if item_id:
        filters.append(InventoryPosition.item_id == item_id)
    if not include_empty:
        filters.append(InventoryPosition.quantity > 0)

    count_stmt = select(func.count(InventoryPosition.id)).where(*filters)
    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        select(InventoryPosition)
        .where(*filters)
        .order_by(InventoryPosition.location_id.asc(), InventoryPosition.item_id.asc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


def list_transactions(
    db: Session,
    *,
    tenant_id: str,
    item_id: str | None = None,
    location_id: str | None = None,
    types: list[TransactionType] | None = None,
    reference_type: ReferenceType | None = None,
    reference_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[InventoryTransaction], int]:
    filters = [InventoryTransaction.tenant_id == tenant_id]
    if item_id:
        filters.append(InventoryTransaction.item_id == item_id)
    if location_id:
        filters.append(InventoryTransaction.location_id == location_id)
    if types:
        filters.append(InventoryTransaction.type.in_(types))
    if reference_type:
        filters.append(InventoryTransaction.reference_type == reference_type)
    if reference_id:
        filters.append(InventoryTransaction.reference_id == reference_id)
    if date_from:
        filters.append(InventoryTransaction.created_at >= date_from)
    if date_to:
        filters.append(InventoryTransaction.created_at <= date_to)

    count_stmt = select(func.count(InventoryTransaction.id)).where(*filters)
    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        select(InventoryTransaction)
        .where(*filters)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return list(rows), total


VALUATION_GROUPS = ("location", "category")


def valuation(db: Session, *, tenant_id: str, group_by: str = "location") -> ValuationReport:
    if group_by not in VALUATION_GROUPS:
        raise ValidationError(f"group_by must be one of: {', '.join(VALUATION_GROUPS)}")

    value_expr = InventoryPosition.quantity * InventoryPosition.average_cost
    if group_by == "location":
        stmt = (
            select(
                Location.id.label("bucket_id"),
                Location.name.label("bucket_name"),
                func.coalesce(func.sum(InventoryPosition.quantity), 0).label("quantity"),
                func.coalesce(func.sum(value_expr), 0).label("value"),
                func.count(InventoryPosition.id).label("positions"),
            )
            .join(Location, Location.id == InventoryPosition.location_id)
            .where(InventoryPosition.tenant_id == tenant_id, InventoryPosition.quantity > 0)
            .group_by(Location.id, Location.name)
            .order_by(Location.name.asc())
        )
    else:
        stmt = (
            select(
                Category.id.label("bucket_id"),
                Category.name.label("bucket_name"),
                func.coalesce(func.sum(InventoryPosition.quantity), 0).label("quantity"),
                func.coalesce(func.sum(value_expr), 0).label("value"),
                func.count(InventoryPosition.id).label("positions"),
            )
            .join(Item, Item.id == InventoryPosition.item_id)
            .outerjoin(Category, Category.id == Item.category_id)
            .where(InventoryPosition.tenant_id == tenant_id, InventoryPosition.quantity > 0)
            .group_by(Category.id, Category.name)
            .order_by(Category.name.asc())
        )

    buckets = [
        ValuationBucket(
            id=row.bucket_id,
            name=row.bucket_name or "Uncategorized",
            quantity=to_qty(row.quantity),
            value=to_money(row.value),
            positions=int(row.positions),
        )
        for row in db.execute(stmt).all()
    ]
    return ValuationReport(
        group_by=group_by,
        total_quantity=to_qty(sum((bucket.quantity for bucket in buckets), Decimal("0"))),
        total_value=to_money(sum((bucket.value for bucket in buckets), Decimal("0"))),
        buckets=buckets,
    )
