from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fnb_erp.core.api_docs import error_responses
from fnb_erp.core.deps import get_db
from fnb_erp.core.permissions import ActorContext, require_permission
from fnb_erp.core.workflow import parse_enum_filter
from fnb_erp.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from fnb_erp.schemas.common import PaginationMeta
from fnb_erp.schemas.purchase_order import (
    PurchaseOrderApproveIn,
    PurchaseOrderCancelIn,
    PurchaseOrderCreateIn,
    PurchaseOrderLineOut,
    PurchaseOrderListOut,
    PurchaseOrderOut,
    PurchaseOrderUpdateIn,
)
from fnb_erp.services import purchase_order_service
from fnb_erp.services.audit_service import record_audit_event

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


def _po_out(po: PurchaseOrder) -> PurchaseOrderOut:
    return PurchaseOrderOut(
        id=po.id,
        po_number=po.po_number,
        supplier_id=po.supplier_id,
        status=po.status.value,
        total_amount=float(po.total_amount),
        currency=po.currency,
        expected_date=po.expected_date,
        notes=po.notes,
        created_by_id=po.created_by_id,
        approved_by_id=po.approved_by_id,
        approved_at=po.approved_at,
        created_at=po.created_at,
        updated_at=po.updated_at,
        lines=[
            PurchaseOrderLineOut(
                id=line.id,
                position=line.position,
                item_id=line.item_id,
                quantity=float(line.quantity),
                unit_cost=float(line.unit_cost),
                total_cost=float(line.total_cost),
                received_qty=float(line.received_qty),
                outstanding_qty=float(line.outstanding_qty),
                notes=line.notes,
            )
            for line in po.lines
        ],
    )


def _commit_and_audit(
    db: Session,
    *,
    actor: ActorContext,
    po: PurchaseOrder,
    action: str,
    before_status: PurchaseOrderStatus | None,
    extra: dict | None = None,
) -> PurchaseOrderOut:
    db.commit()
    out = _po_out(po)
    after = {"status": out.status, "po_number": out.po_number, "total_amount": out.total_amount}
    after.update(extra or {})
    record_audit_event(
        db,
        tenant_id=actor.tenant_id,
        actor_user_id=actor.user_id,
        action=action,
        entity_type="PurchaseOrder",
        entity_id=out.id,
        before={"status": before_status.value} if before_status else None,
        after=after,
    )
    return out


@router.post(
    "",
    response_model=PurchaseOrderOut,
    status_code=201,
    summary="Create purchase order (draft)",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def create_purchase_order(
    payload: PurchaseOrderCreateIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:create")),
):
    po = purchase_order_service.create_purchase_order(db, actor=actor, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:create",
        before_status=None,
        extra={"supplier_id": payload.supplier_id, "line_count": len(payload.lines)},
    )


@router.get(
    "",
    response_model=PurchaseOrderListOut,
    summary="List purchase orders",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_purchase_orders(
    status: str | None = Query(default=None, description="Comma-separated statuses, e.g. DRAFT,APPROVED"),
    supplier_id: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=50),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:read")),
):
    rows, total = purchase_order_service.list_purchase_orders(
        db,
        tenant_id=actor.tenant_id,
        statuses=parse_enum_filter(status, PurchaseOrderStatus),
        supplier_id=supplier_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    items = [_po_out(row) for row in rows]
    return PurchaseOrderListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{purchase_order_id}",
    response_model=PurchaseOrderOut,
    summary="Get purchase order",
    responses=error_responses(401, 403, 404, 500),
)
def get_purchase_order(
    purchase_order_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:read")),
):
    po = purchase_order_service.get_purchase_order(
        db,
        tenant_id=actor.tenant_id,
        purchase_order_id=purchase_order_id,
    )
    return _po_out(po)


@router.put(
    "/{purchase_order_id}",
    response_model=PurchaseOrderOut,
    summary="Edit draft purchase order",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def update_purchase_order(
    purchase_order_id: str,
    payload: PurchaseOrderUpdateIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:edit")),
):
    po = purchase_order_service.update_purchase_order(
        db,
        actor=actor,
        purchase_order_id=purchase_order_id,
        payload=payload,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:update",
        before_status=PurchaseOrderStatus.DRAFT,
        extra={"fields": sorted(payload.model_fields_set)},
    )


@router.post(
    "/{purchase_order_id}/submit",
    response_model=PurchaseOrderOut,
    summary="Submit purchase order for approval",
    responses=error_responses(400, 401, 403, 404, 409, 500),
)
def submit_purchase_order(
    purchase_order_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:create")),
):
    po = purchase_order_service.submit_purchase_order(db, actor=actor, purchase_order_id=purchase_order_id)
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:submit",
        before_status=PurchaseOrderStatus.DRAFT,
    )


@router.post(
    "/{purchase_order_id}/approve",
    response_model=PurchaseOrderOut,
    summary="Approve or reject purchase order",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def approve_purchase_order(
    purchase_order_id: str,
    payload: PurchaseOrderApproveIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:approve")),
):
    po = purchase_order_service.approve_purchase_order(
        db,
        actor=actor,
        purchase_order_id=purchase_order_id,
        action=payload.action,
        reason=payload.reason,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:approve" if payload.action == "approve" else "po:reject",
        before_status=PurchaseOrderStatus.PENDING_APPROVAL,
        extra={"reason": payload.reason} if payload.reason else None,
    )


@router.post(
    "/{purchase_order_id}/send",
    response_model=PurchaseOrderOut,
    summary="Mark purchase order as sent to supplier",
    responses=error_responses(401, 403, 404, 409, 500),
)
def send_purchase_order(
    purchase_order_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:edit")),
):
    po = purchase_order_service.send_purchase_order(db, actor=actor, purchase_order_id=purchase_order_id)
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:send",
        before_status=PurchaseOrderStatus.APPROVED,
    )


@router.post(
    "/{purchase_order_id}/cancel",
    response_model=PurchaseOrderOut,
    summary="Cancel an approved purchase order",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def cancel_purchase_order(
    purchase_order_id: str,
    payload: PurchaseOrderCancelIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("po:approve")),
):
    po = purchase_order_service.cancel_purchase_order(
        db,
        actor=actor,
        purchase_order_id=purchase_order_id,
        reason=payload.reason,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        po=po,
        action="po:cancel",
        before_status=PurchaseOrderStatus.APPROVED,
        extra={"reason": payload.reason} if payload.reason else None,
    )
