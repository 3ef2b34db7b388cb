"""
Per-tenant document numbering backed by locked counter rows.

Numbers are allocated inside the caller's transaction: the counter row is
locked with ``SELECT ... FOR UPDATE`` until commit, so concurrent creators
serialize instead of computing the same "count + 1". A rolled-back
transaction gives its number back; committed numbers are never reused.
"""
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from fnb_erp.core.id_utils import generate_id
from fnb_erp.db.upsert import insert_if_absent
from fnb_erp.models.sequence import SequenceCounter

PURCHASE_ORDER_SEQUENCE = "purchase_order"
INTERNAL_REQUEST_SEQUENCE = "internal_request"
TRANSFER_SEQUENCE = "transfer"
RECEIVING_SEQUENCE_PREFIX = "receiving"


def _locked_counter(db: Session, *, tenant_id: str, name: str) -> SequenceCounter | None:
    return db.execute(
        select(SequenceCounter)
        .where(SequenceCounter.tenant_id == tenant_id, SequenceCounter.name == name)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def next_value(db: Session, *, tenant_id: str, name: str) -> int:
    counter = _locked_counter(db, tenant_id=tenant_id, name=name)
    if counter is None:
        insert_if_absent(
            db,
            SequenceCounter,
            values={"id": generate_id(), "tenant_id": tenant_id, "name": name, "current_value": 0},
            index_elements=["tenant_id", "name"],
        )
        counter = _locked_counter(db, tenant_id=tenant_id, name=name)
        if counter is None:
            raise RuntimeError(f"Sequence counter {name} missing after insert")

    counter.current_value += 1
    db.flush()
    return counter.current_value


def current_value(db: Session, *, tenant_id: str, name: str) -> int:
    value = db.execute(
        select(SequenceCounter.current_value).where(
            SequenceCounter.tenant_id == tenant_id,
            SequenceCounter.name == name,
        )
    ).scalar_one_or_none()
    return int(value or 0)


def reset_sequence(db: Session, *, tenant_id: str, name: str, value: int = 0) -> None:
    """Set a counter explicitly, e.g. when onboarding a tenant with existing numbering."""
    if value < 0:
        raise ValueError("Sequence value cannot be negative")
    counter = _locked_counter(db, tenant_id=tenant_id, name=name)
    if counter is None:
        db.add(SequenceCounter(id=generate_id(), tenant_id=tenant_id, name=name, current_value=value))
    else:
        counter.current_value = value
    db.flush()


def next_po_number(db: Session, *, tenant_id: str) -> str:
    return f"PO-{next_value(db, tenant_id=tenant_id, name=PURCHASE_ORDER_SEQUENCE):05d}"


def next_request_number(db: Session, *, tenant_id: str) -> str:
    return f"REQ-{next_value(db, tenant_id=tenant_id, name=INTERNAL_REQUEST_SEQUENCE):05d}"


def next_transfer_number(db: Session, *, tenant_id: str) -> str:
    return f"TRF-{next_value(db, tenant_id=tenant_id, name=TRANSFER_SEQUENCE):05d}"


def receiving_sequence_name(day: date) -> str:
    return f"{RECEIVING_SEQUENCE_PREFIX}:{day.strftime('%Y%m%d')}"


def next_receiving_number(db: Session, *, tenant_id: str, day: date | None = None) -> str:
    day = day or datetime.now(timezone.utc).date()
    value = next_value(db, tenant_id=tenant_id, name=receiving_sequence_name(day))
    return f"RCV-{day.strftime('%Y%m%d')}-{value:03d}"
