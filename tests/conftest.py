import pytest
import os
from dataclasses import dataclass
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import fnb_erp.models  # noqa: F401
from fnb_erp.core.config import settings
from fnb_erp.core.deps import get_db
from fnb_erp.db.base import Base
from fnb_erp.main import app
from fnb_erp.models.catalog import Category, Item, Location, Supplier
from fnb_erp.models.tenant import Tenant
from fnb_erp.models.user import User

TENANT_ID = "tenant-main"

# (user id, role)
SEED_USERS = [
    ("u-admin", "admin"),
    ("u-buyer", "procurement"),
    ("u-verifier", "procurement"),
    ("u-qc", "qc"),
    ("u-warehouse", "warehouse"),
    ("u-warehouse-2", "warehouse"),
    ("u-manager", "manager"),
    ("u-manager-2", "manager"),
    ("u-outlet", "outlet"),
    ("u-staff", "staff"),
]


@dataclass(frozen=True)
class SeedData:
    tenant_id: str
    supplier_id: str
    warehouse_id: str
    kitchen_id: str
    bar_id: str
    flour_id: str
    milk_id: str
    oil_id: str


def seed_reference_data(session_local) -> SeedData:
    db = session_local()
    try:
        db.add(Tenant(id=TENANT_ID, name="Harbour Kitchens", base_currency="USD"))
        for user_id, role in SEED_USERS:
            db.add(
                User(
                    id=user_id,
                    tenant_id=TENANT_ID,
                    email=f"{user_id}@example.com",
                    full_name=user_id.replace("u-", "").replace("-", " ").title(),
                    role=role,
                    is_active=True,
                )
            )
        db.add(Category(id="cat-dry", tenant_id=TENANT_ID, name="Dry goods"))
        db.add(Category(id="cat-dairy", tenant_id=TENANT_ID, name="Dairy"))
        db.add(Item(id="item-flour", tenant_id=TENANT_ID, category_id="cat-dry", code="FLR-01", name="Flour", uom="kg"))
        db.add(Item(id="item-milk", tenant_id=TENANT_ID, category_id="cat-dairy", code="MLK-01", name="Milk", uom="l"))
        db.add(Item(id="item-oil", tenant_id=TENANT_ID, category_id=None, code="OIL-01", name="Olive oil", uom="l"))
        db.add(Location(id="loc-wh", tenant_id=TENANT_ID, code="WH", name="Central Warehouse", type="WAREHOUSE"))
        db.add(Location(id="loc-kitchen", tenant_id=TENANT_ID, code="KIT", name="Main Kitchen", type="KITCHEN"))
        db.add(Location(id="loc-bar", tenant_id=TENANT_ID, code="BAR", name="Rooftop Bar", type="OUTLET"))
        db.add(Supplier(id="sup-mill", tenant_id=TENANT_ID, code="MILL", name="Northern Mill"))
        db.commit()
    finally:
        db.close()

    return SeedData(
        tenant_id=TENANT_ID,
        supplier_id="sup-mill",
        warehouse_id="loc-wh",
        kitchen_id="loc-kitchen",
        bar_id="loc-bar",
        flour_id="item-flour",
        milk_id="item-milk",
        oil_id="item-oil",
    )


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    original_threshold = settings.transfer_approval_threshold
    original_sod_transfer_fulfill = settings.sod_transfer_fulfill
    original_sod_request_confirm = settings.sod_request_confirm
    settings.secret_key = "test-secret-key"

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret
    settings.transfer_approval_threshold = original_threshold
    settings.sod_transfer_fulfill = original_sod_transfer_fulfill
    settings.sod_request_confirm = original_sod_request_confirm


@pytest.fixture()
def seeded(test_context) -> SeedData:
    _, session_local = test_context
    return seed_reference_data(session_local)
