from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fnb_erp.core.api_docs import error_responses
from fnb_erp.core.deps import get_db
from fnb_erp.core.permissions import ActorContext, require_permission
from fnb_erp.core.workflow import parse_enum_filter
from fnb_erp.models.receiving import Receiving, ReceivingStatus
from fnb_erp.schemas.common import PaginationMeta
from fnb_erp.schemas.receiving import (
    QCInspectIn,
    ReceivingCancelIn,
    ReceivingCreateIn,
    ReceivingLineOut,
    ReceivingListOut,
    ReceivingOut,
    WarehouseReceiveIn,
)
from fnb_erp.services import receiving_service
from fnb_erp.services.audit_service import record_audit_event

router = APIRouter(prefix="/receiving", tags=["receiving"])


def _receiving_out(receiving: Receiving) -> ReceivingOut:
    return ReceivingOut(
        id=receiving.id,
        receiving_number=receiving.receiving_number,
        purchase_order_id=receiving.purchase_order_id,
        status=receiving.status.value,
        proc_verified_by_id=receiving.proc_verified_by_id,
        proc_verified_at=receiving.proc_verified_at,
        proc_notes=receiving.proc_notes,
        qc_inspected_by_id=receiving.qc_inspected_by_id,
        qc_inspected_at=receiving.qc_inspected_at,
        qc_result=receiving.qc_result.value if receiving.qc_result else None,
        qc_notes=receiving.qc_notes,
        warehouse_received_by_id=receiving.warehouse_received_by_id,
        warehouse_received_at=receiving.warehouse_received_at,
        location_id=receiving.location_id,
        batch_number=receiving.batch_number,
        warehouse_notes=receiving.warehouse_notes,
        created_at=receiving.created_at,
        updated_at=receiving.updated_at,
        lines=[
            ReceivingLineOut(
                id=line.id,
                purchase_order_line_id=line.purchase_order_line_id,
                position=line.position,
                item_id=line.item_id,
                expected_qty=float(line.expected_qty),
                received_qty=float(line.received_qty),
                accepted_qty=float(line.accepted_qty),
                rejected_qty=float(line.rejected_qty),
                unit_cost=float(line.unit_cost),
                notes=line.notes,
            )
            for line in receiving.lines
        ],
    )


def _commit_and_audit(
    db: Session,
    *,
    actor: ActorContext,
    receiving: Receiving,
    action: str,
    before_status: ReceivingStatus | None,
    extra: dict | None = None,
) -> ReceivingOut:
    db.commit()
    out = _receiving_out(receiving)
    after = {
        "status": out.status,
        "receiving_number": out.receiving_number,
        "purchase_order_id": out.purchase_order_id,
    }
    after.update(extra or {})
    record_audit_event(
        db,
        tenant_id=actor.tenant_id,
        actor_user_id=actor.user_id,
        action=action,
        entity_type="Receiving",
        entity_id=out.id,
        before={"status": before_status.value} if before_status else None,
        after=after,
    )
    return out


@router.post(
    "",
    response_model=ReceivingOut,
    status_code=201,
    summary="Procurement verification (receiving stage 1)",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def proc_verify(
    payload: ReceivingCreateIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:proc_verify")),
):
    receiving = receiving_service.proc_verify(db, actor=actor, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        receiving=receiving,
        action="receiving:proc_verify",
        before_status=None,
    )


@router.get(
    "",
    response_model=ReceivingListOut,
    summary="List receiving records",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_receivings(
    status: str | None = Query(default=None, description="Comma-separated statuses, e.g. PROC_VERIFIED"),
    purchase_order_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:read")),
):
    rows, total = receiving_service.list_receivings(
        db,
        tenant_id=actor.tenant_id,
        statuses=parse_enum_filter(status, ReceivingStatus),
        purchase_order_id=purchase_order_id,
        limit=limit,
        offset=offset,
    )
    items = [_receiving_out(row) for row in rows]
    return ReceivingListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{receiving_id}",
    response_model=ReceivingOut,
    summary="Get receiving record",
    responses=error_responses(401, 403, 404, 500),
)
def get_receiving(
    receiving_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:read")),
):
    return _receiving_out(receiving_service.get_receiving(db, tenant_id=actor.tenant_id, receiving_id=receiving_id))


@router.post(
    "/{receiving_id}/qc-inspect",
    response_model=ReceivingOut,
    summary="QC inspection (receiving stage 2)",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def qc_inspect(
    receiving_id: str,
    payload: QCInspectIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:qc_inspect")),
):
    receiving = receiving_service.qc_inspect(db, actor=actor, receiving_id=receiving_id, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        receiving=receiving,
        action="receiving:qc_inspect",
        before_status=ReceivingStatus.PROC_VERIFIED,
        extra={"qc_result": payload.qc_result.value},
    )


@router.post(
    "/{receiving_id}/warehouse-receive",
    response_model=ReceivingOut,
    summary="Warehouse receipt into stock (receiving stage 3)",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def warehouse_receive(
    receiving_id: str,
    payload: WarehouseReceiveIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:warehouse_receive")),
):
    receiving = receiving_service.warehouse_receive(db, actor=actor, receiving_id=receiving_id, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        receiving=receiving,
        action="receiving:warehouse_receive",
        before_status=ReceivingStatus.QC_APPROVED,
        extra={"location_id": payload.location_id, "batch_number": payload.batch_number},
    )


@router.post(
    "/{receiving_id}/cancel",
    response_model=ReceivingOut,
    summary="Cancel an in-progress receiving",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def cancel_receiving(
    receiving_id: str,
    payload: ReceivingCancelIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("receiving:proc_verify")),
):
    receiving = receiving_service.get_receiving(db, tenant_id=actor.tenant_id, receiving_id=receiving_id)
    before_status = receiving.status
    receiving = receiving_service.cancel_receiving(db, actor=actor, receiving_id=receiving_id, reason=payload.reason)
    return _commit_and_audit(
        db,
        actor=actor,
        receiving=receiving,
        action="receiving:cancel",
        before_status=before_status,
        extra={"reason": payload.reason} if payload.reason else None,
    )
