from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fnb_erp.core.api_docs import error_responses
from fnb_erp.core.deps import get_db
from fnb_erp.core.permissions import ActorContext, require_permission
from fnb_erp.core.workflow import parse_enum_filter
from fnb_erp.models.internal_request import InternalRequest, InternalRequestStatus
from fnb_erp.schemas.common import PaginationMeta
from fnb_erp.schemas.internal_request import (
    InternalRequestCancelIn,
    InternalRequestConfirmIn,
    InternalRequestCreateIn,
    InternalRequestFulfillIn,
    InternalRequestLineOut,
    InternalRequestListOut,
    InternalRequestOut,
)
from fnb_erp.services import internal_request_service
from fnb_erp.services.audit_service import record_audit_event

router = APIRouter(prefix="/internal-requests", tags=["internal-requests"])


def _request_out(request: InternalRequest) -> InternalRequestOut:
    return InternalRequestOut(
        id=request.id,
        request_number=request.request_number,
        status=request.status.value,
        notes=request.notes,
        location_id=request.location_id,
        has_discrepancy=request.has_discrepancy,
        created_by_id=request.created_by_id,
        fulfilled_by_id=request.fulfilled_by_id,
        fulfilled_at=request.fulfilled_at,
        confirmed_by_id=request.confirmed_by_id,
        confirmed_at=request.confirmed_at,
        created_at=request.created_at,
        updated_at=request.updated_at,
        lines=[
            InternalRequestLineOut(
                id=line.id,
                position=line.position,
                item_id=line.item_id,
                requested_qty=float(line.requested_qty),
                issued_qty=float(line.issued_qty),
                confirmed_qty=float(line.confirmed_qty) if line.confirmed_qty is not None else None,
                notes=line.notes,
            )
            for line in request.lines
        ],
    )


def _commit_and_audit(
    db: Session,
    *,
    actor: ActorContext,
    request: InternalRequest,
    action: str,
    before_status: InternalRequestStatus | None,
    extra: dict | None = None,
) -> InternalRequestOut:
    db.commit()
    out = _request_out(request)
    after = {"status": out.status, "request_number": out.request_number}
    after.update(extra or {})
    record_audit_event(
        db,
        tenant_id=actor.tenant_id,
        actor_user_id=actor.user_id,
        action=action,
        entity_type="InternalRequest",
        entity_id=out.id,
        before={"status": before_status.value} if before_status else None,
        after=after,
    )
    return out


@router.post(
    "",
    response_model=InternalRequestOut,
    status_code=201,
    summary="Raise internal stock request",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def create_internal_request(
    payload: InternalRequestCreateIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:write")),
):
    request = internal_request_service.create_internal_request(db, actor=actor, payload=payload)
    return _commit_and_audit(
        db,
        actor=actor,
        request=request,
        action="request:create",
        before_status=None,
        extra={"line_count": len(payload.lines)},
    )


@router.get(
    "",
    response_model=InternalRequestListOut,
    summary="List internal requests",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_internal_requests(
    status: str | None = Query(default=None, description="Comma-separated statuses, e.g. PENDING,ISSUED"),
    mine: bool = Query(default=False, description="Only requests raised by the caller"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:read")),
):
    rows, total = internal_request_service.list_internal_requests(
        db,
        tenant_id=actor.tenant_id,
        statuses=parse_enum_filter(status, InternalRequestStatus),
        created_by_id=actor.user_id if mine else None,
        limit=limit,
        offset=offset,
    )
    items = [_request_out(row) for row in rows]
    return InternalRequestListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{request_id}",
    response_model=InternalRequestOut,
    summary="Get internal request",
    responses=error_responses(401, 403, 404, 500),
)
def get_internal_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:read")),
):
    return _request_out(
        internal_request_service.get_internal_request(db, tenant_id=actor.tenant_id, request_id=request_id)
    )


@router.post(
    "/{request_id}/fulfill",
    response_model=InternalRequestOut,
    summary="Issue stock for a request",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def fulfill_internal_request(
    request_id: str,
    payload: InternalRequestFulfillIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:fulfill")),
):
    request = internal_request_service.fulfill_internal_request(
        db,
        actor=actor,
        request_id=request_id,
        payload=payload,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        request=request,
        action="request:fulfill",
        before_status=InternalRequestStatus.PENDING,
        extra={"location_id": payload.location_id},
    )


@router.post(
    "/{request_id}/confirm",
    response_model=InternalRequestOut,
    summary="Confirm receipt of issued stock",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def confirm_internal_request(
    request_id: str,
    payload: InternalRequestConfirmIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:confirm")),
):
    request = internal_request_service.confirm_internal_request(
        db,
        actor=actor,
        request_id=request_id,
        payload=payload,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        request=request,
        action="request:confirm",
        before_status=InternalRequestStatus.ISSUED,
        extra={"has_discrepancy": request.has_discrepancy},
    )


@router.post(
    "/{request_id}/cancel",
    response_model=InternalRequestOut,
    summary="Cancel a pending request",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def cancel_internal_request(
    request_id: str,
    payload: InternalRequestCancelIn,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_permission("requests:write")),
):
    request = internal_request_service.cancel_internal_request(
        db,
        actor=actor,
        request_id=request_id,
        reason=payload.reason,
    )
    return _commit_and_audit(
        db,
        actor=actor,
        request=request,
        action="request:cancel",
        before_status=InternalRequestStatus.PENDING,
        extra={"reason": payload.reason} if payload.reason else None,
    )
