from datetime import timedelta

from sqlalchemy import update

from fnb_erp.core.security import create_access_token, create_token
from fnb_erp.models.tenant import Tenant
from fnb_erp.models.user import User
from helpers import auth_headers, error_code, error_message, stock_up


def test_health_endpoints(test_context):
    client, _ = test_context

    assert client.get("/health").json() == {"ok": True}
    assert client.get("/").json()["docs"] == "/docs"


def test_requests_without_valid_token_are_unauthorized(test_context, seeded):
    client, session_local = test_context

    missing = client.get("/inventory/positions")
    assert missing.status_code == 401
    assert error_code(missing) == "unauthorized"
    assert missing.headers["www-authenticate"] == "Bearer"
    assert missing.json()["error"]["path"] == "/inventory/positions"

    garbage = client.get("/inventory/positions", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401

    refresh_token = create_token("u-staff", timedelta(minutes=5), token_type="refresh")
    wrong_type = client.get("/inventory/positions", headers={"Authorization": f"Bearer {refresh_token}"})
    assert wrong_type.status_code == 401
    assert error_message(wrong_type) == "Invalid token type"

    unknown = client.get("/inventory/positions", headers=auth_headers("u-ghost"))
    assert unknown.status_code == 401
    assert error_message(unknown) == "User not found"

    db = session_local()
    try:
        db.execute(update(User).where(User.id == "u-staff").values(is_active=False))
        db.commit()
    finally:
        db.close()
    inactive = client.get("/inventory/positions", headers=auth_headers("u-staff"))
    assert inactive.status_code == 401
    assert error_message(inactive) == "User is inactive"

    db = session_local()
    try:
        db.execute(update(Tenant).where(Tenant.id == seeded.tenant_id).values(is_active=False))
        db.commit()
    finally:
        db.close()
    suspended = client.get("/inventory/positions", headers=auth_headers("u-warehouse"))
    assert suspended.status_code == 401


def test_token_tenant_claim_must_match_user(test_context, seeded):
    client, _ = test_context

    pinned = create_access_token("u-staff", tenant_id=seeded.tenant_id)
    ok = client.get("/inventory/positions", headers={"Authorization": f"Bearer {pinned}"})
    assert ok.status_code == 200, ok.text
    assert ok.headers["x-request-id"]

    foreign = create_access_token("u-staff", tenant_id="tenant-other")
    res = client.get("/inventory/positions", headers={"Authorization": f"Bearer {foreign}"})
    assert res.status_code == 401
    assert error_message(res) == "Token tenant mismatch"


def test_adjust_requires_permission(test_context, seeded):
    client, _ = test_context

    res = client.post(
        "/inventory/adjust",
        json={"item_id": seeded.flour_id, "location_id": seeded.warehouse_id, "qty_delta": 1, "reason": "Found"},
        headers=auth_headers("u-outlet"),
    )
    assert res.status_code == 403
    assert error_code(res) == "forbidden"
    assert error_message(res) == "Insufficient permission for this action"

    qc_read = client.get("/inventory/positions", headers=auth_headers("u-qc"))
    assert qc_read.status_code == 403


def test_adjust_validates_payload_and_stock(test_context, seeded):
    client, _ = test_context

    zero = client.post(
        "/inventory/adjust",
        json={"item_id": seeded.flour_id, "location_id": seeded.warehouse_id, "qty_delta": 0, "reason": "Count"},
        headers=auth_headers("u-warehouse"),
    )
    assert zero.status_code == 422
    assert error_code(zero) == "validation_error"

    overdraw = client.post(
        "/inventory/adjust",
        json={"item_id": seeded.flour_id, "location_id": seeded.warehouse_id, "qty_delta": -1, "reason": "Count"},
        headers=auth_headers("u-warehouse"),
    )
    assert overdraw.status_code == 400
    assert error_code(overdraw) == "insufficient_stock"
    assert "available 0, requested 1" in error_message(overdraw)

    unknown_location = client.post(
        "/inventory/adjust",
        json={"item_id": seeded.flour_id, "location_id": "loc-x", "qty_delta": 1, "reason": "Count"},
        headers=auth_headers("u-warehouse"),
    )
    assert unknown_location.status_code == 404
    assert error_message(unknown_location) == "Location loc-x not found"


def test_positions_and_transactions_listing(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=2)
    stock_up(client, item_id=seeded.milk_id, location_id=seeded.kitchen_id, qty=4, unit_cost=1.5)
    adjust = client.post(
        "/inventory/adjust",
        json={"item_id": seeded.milk_id, "location_id": seeded.kitchen_id, "qty_delta": -4, "reason": "Expired"},
        headers=auth_headers("u-warehouse"),
    )
    assert adjust.status_code == 201, adjust.text
    assert adjust.json()["type"] == "ADJUSTMENT"
    assert adjust.json()["qty_delta"] == -4.0
    assert adjust.json()["created_by_id"] == "u-warehouse"

    positions = client.get("/inventory/positions", headers=auth_headers("u-staff")).json()
    assert positions["pagination"]["total"] == 1
    assert positions["items"][0]["item_id"] == seeded.flour_id
    assert positions["items"][0]["value"] == 20.0

    with_empty = client.get("/inventory/positions?include_empty=true", headers=auth_headers("u-staff")).json()
    assert with_empty["pagination"]["total"] == 2

    kitchen_txns = client.get(
        f"/inventory/transactions?location_id={seeded.kitchen_id}",
        headers=auth_headers("u-staff"),
    ).json()
    assert kitchen_txns["pagination"]["total"] == 2
    assert sum(item["qty_delta"] for item in kitchen_txns["items"]) == 0.0

    bad_type = client.get("/inventory/transactions?types=STOLEN", headers=auth_headers("u-staff"))
    assert bad_type.status_code == 400
    assert error_message(bad_type) == "Unknown transaction type STOLEN"


def test_valuation_endpoint(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=2)
    stock_up(client, item_id=seeded.oil_id, location_id=seeded.bar_id, qty=2, unit_cost=7.25)

    by_location = client.get("/inventory/valuation", headers=auth_headers("u-manager")).json()
    assert by_location["group_by"] == "location"
    assert by_location["total_value"] == 34.5
    assert [bucket["name"] for bucket in by_location["buckets"]] == ["Central Warehouse", "Rooftop Bar"]

    by_category = client.get("/inventory/valuation?group_by=category", headers=auth_headers("u-manager")).json()
    assert {bucket["name"]: bucket["value"] for bucket in by_category["buckets"]} == {
        "Dry goods": 20.0,
        "Uncategorized": 14.5,
    }

    invalid = client.get("/inventory/valuation?group_by=supplier", headers=auth_headers("u-manager"))
    assert invalid.status_code == 422
