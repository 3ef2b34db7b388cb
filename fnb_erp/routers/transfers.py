from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fnb_erp.core.api_docs import error_responses
from fnb_erp.core.deps import get_db
from fnb_erp.core.permissions import ActorContext, require_permission
from fnb_erp.core.workflow import parse_enum_filter
from fnb_erp.models.transfer import Transfer, TransferStatus
from fnb_erp.schemas.common import PaginationMeta
from fnb_erp.schemas.transfer import (
    TransferApproveIn,
    TransferCreateIn,
    TransferFulfillIn,
    TransferLineOut,
    TransferListOut,
    TransferOut,
    TransferReceiveIn,
)
from fnb_erp.services import transfer_service
from fnb_erp.services.audit_service import record_audit_event

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _transfer_out(transfer: Transfer) -> TransferOut:
    return TransferOut(
        id=transfer.id,
        transfer_number=transfer.transfer_number,
        from_location_id=transfer.from_location_id,
        to_location_id=transfer.to_location_id,
        status=transfer.status.value,
        estimated_value=float(transfer.estimated_value),
        notes=transfer.notes,
        created_by_id=transfer.created_by_id,
        approved_by_id=transfer.approved_by_id,
        approved_at=transfer.approved_at,
        fulfilled_by_id=transfer.fulfilled_by_id,
        fulfilled_at=transfer.fulfilled_at,
        received_by_id=transfer.received_by_id,
        received_at=transfer.received_at,
        created_at=transfer.created_at,
        updated_at=transfer.updated_at,
        lines=[
            TransferLineOut(
                id=line.id,
                position=line.position,
                item_id=line.item_id,
                quantity=float(line.quantity),
                received_qty=float(line.received_qty),
                unit_cost=float(line.unit_cost),
                notes=line.notes,
            )
            for line in transfer.lines
        ],
    )


def _commit_and_audit(
    db: Session,
    *,
    actor: ActorContext,
    transfer: Transfer,
    action: str,
    before_status: TransferStatus | None,
    extra: dict | None = None,
) -> TransferOut:
    db.commit()
    out = _transfer_out(transfer)
    after = {"status": out.status, "transfer_number": out.transfer_number, "estimated_value": out.estimated_value}
    after.update(extra or {})
    record_audit_event(
        db,
        tenant_id=actor.tenant_id,
        actor_user_id=actor.user_id,
        action=action,
        entity_type="Transfer",
        entity_id=out.id,
        before={"status": before_status.value} if before_status else None,
        after=after,
    )
    return out


@router.post(
    "",
    response_model=TransferOut,
    status_code=201,
    summary="Create transfer between locations",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def create_transfer(
    payload: TransferCreateIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:write")),
):
    transfer = transfer_service.create_transfer(db, actor=actor, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        transfer=transfer,
        action="transfer:create",
        before_status=None,
        extra={"from_location_id": payload.from_location_id, "to_location_id": payload.to_location_id},
    )


@router.get(
    "",
    response_model=TransferListOut,
    summary="List transfers",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_transfers(
    status: str | None = Query(default=None, description="Comma-separated statuses, e.g. PENDING,APPROVED"),
    location_id: str | None = Query(default=None, description="Source or destination location"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:read")),
):
    rows, total = transfer_service.list_transfers(
        db,
        tenant_id=actor.tenant_id,
        statuses=parse_enum_filter(status, TransferStatus),
        location_id=location_id,
        limit=limit,
        offset=offset,
    )
    items = [_transfer_out(row) for row in rows]
    return TransferListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{transfer_id}",
    response_model=TransferOut,
    summary="Get transfer",
    responses=error_responses(401, 403, 404, 500),
)
def get_transfer(
    transfer_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:read")),
):
    return _transfer_out(transfer_service.get_transfer(db, tenant_id=actor.tenant_id, transfer_id=transfer_id))


@router.post(
    "/{transfer_id}/approve",
    response_model=TransferOut,
    summary="Approve or reject a high-value transfer",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def approve_transfer(
    transfer_id: str,
    payload: TransferApproveIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:approve")),
):
    transfer = transfer_service.approve_transfer(
        db,
        actor=actor,
        transfer_id=transfer_id,
        action=payload.action,
        reason=payload.reason,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        transfer=transfer,
        action="transfer:approve" if payload.action == "approve" else "transfer:reject",
        before_status=TransferStatus.PENDING,
        extra={"reason": payload.reason} if payload.reason else None,
    )


@router.post(
    "/{transfer_id}/fulfill",
    response_model=TransferOut,
    summary="Ship transfer from the source location",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def fulfill_transfer(
    transfer_id: str,
    payload: TransferFulfillIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:fulfill")),
):
    transfer = transfer_service.fulfill_transfer(db, actor=actor, transfer_id=transfer_id, notes=payload.notes)
    return _commit_and_audit(
        db,
        actor=actor,
        transfer=transfer,
        action="transfer:fulfill",
        before_status=TransferStatus.APPROVED,
    )


@router.post(
    "/{transfer_id}/receive",
    response_model=TransferOut,
    summary="Receive transfer at the destination",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def receive_transfer(
    transfer_id: str,
    payload: TransferReceiveIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("transfers:receive")),
):
    transfer = transfer_service.receive_transfer(db, actor=actor, transfer_id=transfer_id, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        transfer=transfer,
        action="transfer:receive",
        before_status=TransferStatus.IN_TRANSIT,
    )
