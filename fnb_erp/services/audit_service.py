import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fnb_erp.core.id_utils import generate_id
from fnb_erp.core.observability import log_event
from fnb_erp.models.audit_log import AuditLog

logger = logging.getLogger("fnb_erp.audit")


def record_audit_event(
    db: Session,
    *,
    tenant_id: str,
    actor_user_id: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> AuditLog | None:
    """Persist an audit record after the business transaction has committed.

    Failures are logged and rolled back; they never reach the caller.
    """
    event = AuditLog(
        id=generate_id(),
        tenant_id=tenant_id,
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before_json=before,
        after_json=after,
    )
    try:
        db.add(event)
        db.commit()
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        db.rollback()
        log_event(
            logger,
            logging.WARNING,
            "audit_write_failed",
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            error=str(exc),
        )
        return None
    return event
