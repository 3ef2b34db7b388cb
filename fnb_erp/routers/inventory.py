from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fnb_erp.core.api_docs import error_responses
from fnb_erp.core.deps import get_db
from fnb_erp.core.permissions import ActorContext, require_permission
from fnb_erp.core.workflow import parse_enum_filter
from fnb_erp.models.inventory import InventoryPosition, InventoryTransaction, ReferenceType, TransactionType
from fnb_erp.schemas.common import PaginationMeta
from fnb_erp.schemas.inventory import (
    InventoryAdjustIn,
    InventoryPositionListOut,
    InventoryPositionOut,
    InventoryTransactionListOut,
    InventoryTransactionOut,
    InventoryValuationOut,
    ValuationBucketOut,
)
from fnb_erp.services import catalog_service, inventory_service
from fnb_erp.services.audit_service import record_audit_event

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _position_out(position: InventoryPosition) -> InventoryPositionOut:
    return InventoryPositionOut(
        item_id=position.item_id,
        location_id=position.location_id,
        quantity=float(position.quantity),
        average_cost=float(position.average_cost),
        value=float(position.quantity * position.average_cost),
        updated_at=position.updated_at,
    )


def _transaction_out(entry: InventoryTransaction) -> InventoryTransactionOut:
    return InventoryTransactionOut(
        id=entry.id,
        item_id=entry.item_id,
        location_id=entry.location_id,
        type=entry.type.value,
        quantity=float(entry.quantity),
        qty_delta=float(entry.qty_delta),
        unit_cost=float(entry.unit_cost) if entry.unit_cost is not None else None,
        reference_type=entry.reference_type.value,
        reference_id=entry.reference_id,
        notes=entry.notes,
        created_by_id=entry.created_by_id,
        created_at=entry.created_at,
    )


@router.get(
    "/positions",
    response_model=InventoryPositionListOut,
    summary="List stock positions",
    responses=error_responses(401, 403, 422, 500),
)
def list_positions(
    location_id: str | None = Query(default=None),
    item_id: str | None = Query(default=None),
    include_empty: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("inventory:read")),
):
    rows, total = inventory_service.list_positions(
        db,
        tenant_id=actor.tenant_id,
        location_id=location_id,
        item_id=item_id,
        include_empty=include_empty,
        limit=limit,
        offset=offset,
    )
    items = [_position_out(row) for row in rows]
    return InventoryPositionListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/positions/{item_id}/{location_id}",
    response_model=InventoryPositionOut,
    summary="Get stock position for one item at one location",
    responses=error_responses(401, 403, 404, 500),
)
def get_position(
    item_id: str,
    location_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("inventory:read")),
):
    catalog_service.get_item(db, tenant_id=actor.tenant_id, item_id=item_id, require_active=False)
    catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=location_id, require_active=False)
    snapshot = inventory_service.get_position(db, tenant_id=actor.tenant_id, item_id=item_id, location_id=location_id)
    return InventoryPositionOut(
        item_id=item_id,
        location_id=location_id,
        quantity=float(snapshot.quantity),
        average_cost=float(snapshot.average_cost),
        value=float(snapshot.value),
    )


@router.get(
    "/transactions",
    response_model=InventoryTransactionListOut,
    summary="Inventory transaction history",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_transactions(
    item_id: str | None = Query(default=None),
    location_id: str | None = Query(default=None),
    types: str | None = Query(default=None, description="Comma-separated types, e.g. INBOUND,TRANSFER_IN"),
    reference_type: ReferenceType | None = Query(default=None),
    reference_id: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("inventory:read")),
):
    rows, total = inventory_service.list_transactions(
        db,
        tenant_id=actor.tenant_id,
        item_id=item_id,
        location_id=location_id,
        types=parse_enum_filter(types, TransactionType, label="transaction type"),
        reference_type=reference_type,
        reference_id=reference_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    items = [_transaction_out(row) for row in rows]
    return InventoryTransactionListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/valuation",
    response_model=InventoryValuationOut,
    summary="Inventory valuation by location or category",
    responses=error_responses(400, 401, 403, 422, 500),
)
def get_valuation(
    group_by: str = Query(default="location", pattern="^(location|category)$"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("inventory:read")),
):
    report = inventory_service.valuation(db, tenant_id=actor.tenant_id, group_by=group_by)
    return InventoryValuationOut(
        group_by=report.group_by,
        total_quantity=float(report.total_quantity),
        total_value=float(report.total_value),
        buckets=[
            ValuationBucketOut(
                id=bucket.id,
                name=bucket.name,
                quantity=float(bucket.quantity),
                value=float(bucket.value),
                positions=bucket.positions,
            )
            for bucket in report.buckets
        ],
    )


@router.post(
    "/adjust",
    response_model=InventoryTransactionOut,
    status_code=201,
    summary="Manual stock adjustment",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def adjust_stock(
    payload: InventoryAdjustIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("inventory:adjust")),
):
    catalog_service.get_item(db, tenant_id=actor.tenant_id, item_id=payload.item_id)
    catalog_service.get_location(db, tenant_id=actor.tenant_id, location_id=payload.location_id)
    entry = inventory_service.adjust(
        db,
        tenant_id=actor.tenant_id,
        item_id=payload.item_id,
        location_id=payload.location_id,
        qty_delta=payload.qty_delta,
        unit_cost=payload.unit_cost,
        reason=payload.reason,
        actor_id=actor.user_id,
    )
    db.commit()
    out = _transaction_out(entry)
    record_audit_event(
        db,
        tenant_id=actor.tenant_id,
        actor_user_id=actor.user_id,
        action="inventory:adjust",
        entity_type="InventoryTransaction",
        entity_id=out.id,
        after={
            "item_id": out.item_id,
            "location_id": out.location_id,
            "qty_delta": out.qty_delta,
            "reason": payload.reason,
        },
    )
    return out
