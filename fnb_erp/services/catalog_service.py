from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from fnb_erp.core.errors import NotFoundError, ValidationError
from fnb_erp.models.catalog import Item, Location, Supplier


def get_item(db: Session, *, tenant_id: str, item_id: str, require_active: bool = True) -> Item:
    item = db.execute(
        select(Item).where(Item.id == item_id, Item.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    if require_active and not item.is_active:
        raise ValidationError(f"Item {item.code} is inactive")
    return item


def get_items(db: Session, *, tenant_id: str, item_ids: Iterable[str]) -> dict[str, Item]:
    """Resolve every id to an active item of the tenant, in one query."""
    wanted = set(item_ids)
    if not wanted:
        return {}
    rows = db.execute(
        select(Item).where(Item.tenant_id == tenant_id, Item.id.in_(wanted))
    ).scalars().all()
    items = {row.id: row for row in rows}
    missing = sorted(wanted - items.keys())
    if missing:
        raise NotFoundError(f"Item {missing[0]} not found")
    inactive = sorted(item.code for item in items.values() if not item.is_active)
    if inactive:
        raise ValidationError(f"Item {inactive[0]} is inactive")
    return items


def get_location(db: Session, *, tenant_id: str, location_id: str, require_active: bool = True) -> Location:
    location = db.execute(
        select(Location).where(Location.id == location_id, Location.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if not location:
        raise NotFoundError(f"Location {location_id} not found")
    if require_active and not location.is_active:
        raise ValidationError(f"Location {location.code} is inactive")
    return location


def get_supplier(db: Session, *, tenant_id: str, supplier_id: str, require_active: bool = True) -> Supplier:
    supplier = db.execute(
        select(Supplier).where(Supplier.id == supplier_id, Supplier.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if not supplier:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    if require_active and not supplier.is_active:
        raise ValidationError(f"Supplier {supplier.code} is inactive")
    return supplier
