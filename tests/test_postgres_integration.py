import os
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, delete, inspect, text
from sqlalchemy.orm import sessionmaker

from fnb_erp.core.errors import InsufficientStockError
from fnb_erp.core.id_utils import generate_id
from fnb_erp.models.catalog import Item, Location
from fnb_erp.models.inventory import InventoryPosition, InventoryReference, InventoryTransaction, ReferenceType, TransactionType
from fnb_erp.models.sequence import SequenceCounter
from fnb_erp.models.tenant import Tenant
from fnb_erp.services import inventory_service, sequence_service


def _test_pg_url() -> str | None:
    return os.getenv("TEST_POSTGRES_DATABASE_URL")


@pytest.mark.integration
def test_postgres_connection_and_core_tables():
    url = _test_pg_url()
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run Postgres integration tests.")

    engine = create_engine(url, pool_pre_ping=True)
    with engine.connect() as conn:
        assert conn.execute(text("SELECT 1")).scalar_one() == 1

    table_names = set(inspect(engine).get_table_names())
    assert "inventory_positions" in table_names
    assert "inventory_transactions" in table_names
    assert "purchase_orders" in table_names
    assert "sequence_counters" in table_names


@pytest.mark.integration
def test_concurrent_numbering_and_withdrawals_never_collide():
    url = _test_pg_url()
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run Postgres integration tests.")

    engine = create_engine(url, pool_pre_ping=True, pool_size=10)
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tenant_id = f"pg-{generate_id()[:8]}"
    item_id = generate_id()
    location_id = generate_id()

    db = session_local()
    try:
        db.add(Tenant(id=tenant_id, name="Concurrency check"))
        db.add(Item(id=item_id, tenant_id=tenant_id, code="PG-ITEM", name="Sugar"))
        db.add(Location(id=location_id, tenant_id=tenant_id, code="PG-WH", name="PG Warehouse"))
        db.commit()
        inventory_service.increase(
            db,
            tenant_id=tenant_id,
            item_id=item_id,
            location_id=location_id,
            qty=Decimal("10"),
            unit_cost=Decimal("1"),
            txn_type=TransactionType.INBOUND,
            reference=InventoryReference(type=ReferenceType.ADJUSTMENT),
        )
        db.commit()
    finally:
        db.close()

    def allocate(_):
        session = session_local()
        try:
            number = sequence_service.next_po_number(session, tenant_id=tenant_id)
            session.commit()
            return number
        finally:
            session.close()

    def withdraw(_):
        session = session_local()
        try:
            inventory_service.decrease(
                session,
                tenant_id=tenant_id,
                item_id=item_id,
                location_id=location_id,
                qty=Decimal("1"),
                txn_type=TransactionType.OUTBOUND,
                reference=InventoryReference(type=ReferenceType.ADJUSTMENT),
            )
            session.commit()
            return True
        except InsufficientStockError:
            session.rollback()
            return False
        finally:
            session.close()

    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            numbers = list(pool.map(allocate, range(20)))
            outcomes = list(pool.map(withdraw, range(15)))

        assert len(set(numbers)) == 20
        assert sum(outcomes) == 10

        db = session_local()
        try:
            snapshot = inventory_service.get_position(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id)
            rebuilt = inventory_service.ledger_quantity(db, tenant_id=tenant_id, item_id=item_id, location_id=location_id)
        finally:
            db.close()
        assert snapshot.quantity == 0
        assert rebuilt == 0
    finally:
        db = session_local()
        try:
            db.execute(delete(InventoryTransaction).where(InventoryTransaction.tenant_id == tenant_id))
            db.execute(delete(InventoryPosition).where(InventoryPosition.tenant_id == tenant_id))
            db.execute(delete(SequenceCounter).where(SequenceCounter.tenant_id == tenant_id))
            db.execute(delete(Item).where(Item.tenant_id == tenant_id))
            db.execute(delete(Location).where(Location.tenant_id == tenant_id))
            db.execute(delete(Tenant).where(Tenant.id == tenant_id))
            db.commit()
        finally:
            db.close()


@pytest.mark.integration
def test_alembic_upgrade_downgrade_smoke():
    url = _test_pg_url()
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run migration smoke tests.")
    if os.getenv("ALLOW_DESTRUCTIVE_MIGRATION_TESTS") != "1":
        pytest.skip("Set ALLOW_DESTRUCTIVE_MIGRATION_TESTS=1 for downgrade smoke test.")

    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))

    previous_database_url = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = url
    try:
        command.upgrade(alembic_cfg, "head")
        command.downgrade(alembic_cfg, "base")
        command.upgrade(alembic_cfg, "head")
    finally:
        if previous_database_url is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = previous_database_url
