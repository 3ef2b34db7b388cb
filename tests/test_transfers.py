from fnb_erp.core.config import settings
from helpers import auth_headers, error_code, error_message, position, stock_up


def _create_transfer(client, *, from_id: str, to_id: str, lines: list[dict], user_id: str = "u-outlet"):
    return client.post(
        "/transfers",
        json={"from_location_id": from_id, "to_location_id": to_id, "lines": lines},
        headers=auth_headers(user_id),
    )


def _receive(client, transfer: dict, received: list[float], user_id: str = "u-outlet"):
    return client.post(
        f"/transfers/{transfer['id']}/receive",
        json={"lines": [{"id": line["id"], "received_qty": qty} for line, qty in zip(transfer["lines"], received)]},
        headers=auth_headers(user_id),
    )


def test_transfer_at_threshold_is_approved_immediately(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=100, unit_cost=10)

    res = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 100}],
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["transfer_number"] == "TRF-00001"
    assert body["estimated_value"] == 1000.0
    assert body["status"] == "APPROVED"
    assert body["lines"][0]["unit_cost"] == 10.0


def test_transfer_above_threshold_waits_for_approval(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.oil_id, location_id=seeded.warehouse_id, qty=1, unit_cost=1000.01)

    res = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.bar_id,
        lines=[{"item_id": seeded.oil_id, "quantity": 1}],
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["status"] == "PENDING"
    assert body["estimated_value"] == 1000.01
    assert "[Auto: Requires approval - value 1000.01 exceeds threshold 1000.00]" in body["notes"]

    approved = client.post(
        f"/transfers/{body['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers("u-admin"),
    )
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["approved_by_id"] == "u-admin"


def test_sub_cent_value_over_threshold_still_needs_approval(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=100, unit_cost=10)
    stock_up(client, item_id=seeded.oil_id, location_id=seeded.warehouse_id, qty=1, unit_cost=1)

    res = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 100}, {"item_id": seeded.oil_id, "quantity": 0.004}],
    )
    assert res.status_code == 201, res.text
    body = res.json()
    # 1000.004 is stored rounded but compared unrounded
    assert body["estimated_value"] == 1000.0
    assert body["status"] == "PENDING"
    assert "value 1000.004 exceeds threshold 1000.00" in body["notes"]


def test_creator_cannot_approve_own_transfer(test_context, seeded):
    client, _ = test_context
    settings.transfer_approval_threshold = 0
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=5, unit_cost=1)

    transfer = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1}],
        user_id="u-admin",
    ).json()
    assert transfer["status"] == "PENDING"

    res = client.post(
        f"/transfers/{transfer['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers("u-admin"),
    )
    assert res.status_code == 403
    assert error_message(res) == "You cannot approve a transfer you created"

    rejected = client.post(
        f"/transfers/{transfer['id']}/approve",
        json={"action": "reject", "reason": "Not needed"},
        headers=auth_headers("u-manager"),
    )
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["status"] == "CANCELLED"
    assert rejected.json()["notes"].endswith("Rejected: Not needed")


def test_transfer_moves_stock_at_source_cost(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=4)
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.kitchen_id, qty=2, unit_cost=10)

    transfer = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 6}],
    ).json()

    fulfill_res = client.post(f"/transfers/{transfer['id']}/fulfill", json={}, headers=auth_headers("u-warehouse"))
    assert fulfill_res.status_code == 200, fulfill_res.text
    assert fulfill_res.json()["status"] == "IN_TRANSIT"
    assert position(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id)["quantity"] == 4.0

    receive_res = _receive(client, transfer, [6])
    assert receive_res.status_code == 200, receive_res.text
    assert receive_res.json()["status"] == "RECEIVED"
    assert receive_res.json()["received_by_id"] == "u-outlet"

    kitchen = position(client, item_id=seeded.flour_id, location_id=seeded.kitchen_id)
    assert kitchen["quantity"] == 8.0
    # (2 x 10 + 6 x 4) / 8
    assert kitchen["average_cost"] == 5.5

    txns = client.get(
        f"/inventory/transactions?reference_type=TRANSFER&reference_id={transfer['id']}&types=TRANSFER_OUT,TRANSFER_IN",
        headers=auth_headers("u-staff"),
    ).json()
    assert sorted(item["qty_delta"] for item in txns["items"]) == [-6.0, 6.0]


def test_fulfill_fails_when_source_was_drained(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.milk_id, location_id=seeded.warehouse_id, qty=5, unit_cost=1)

    transfer = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.bar_id,
        lines=[{"item_id": seeded.milk_id, "quantity": 4}],
    ).json()
    assert transfer["status"] == "APPROVED"

    drain = client.post(
        "/inventory/adjust",
        json={
            "item_id": seeded.milk_id,
            "location_id": seeded.warehouse_id,
            "qty_delta": -3,
            "reason": "Spoiled batch",
        },
        headers=auth_headers("u-warehouse"),
    )
    assert drain.status_code == 201, drain.text

    res = client.post(f"/transfers/{transfer['id']}/fulfill", json={}, headers=auth_headers("u-warehouse"))
    assert res.status_code == 400
    assert error_code(res) == "insufficient_stock"

    fetched = client.get(f"/transfers/{transfer['id']}", headers=auth_headers("u-staff")).json()
    assert fetched["status"] == "APPROVED"
    assert position(client, item_id=seeded.milk_id, location_id=seeded.warehouse_id)["quantity"] == 2.0


def test_transfer_create_validation(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=3, unit_cost=1)

    same = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.warehouse_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1}],
    )
    assert same.status_code == 400
    assert error_message(same) == "Source and destination must be different"

    # two lines of the same item are checked against stock together
    short = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 2}, {"item_id": seeded.flour_id, "quantity": 2}],
    )
    assert short.status_code == 400
    assert error_message(short) == (
        "Insufficient stock for Flour at source location. Available: 3, requested: 4"
    )


def test_receive_cannot_exceed_shipped_and_missing_lines_count_as_zero(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)
    stock_up(client, item_id=seeded.oil_id, location_id=seeded.warehouse_id, qty=10, unit_cost=2)

    transfer = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.bar_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 3}, {"item_id": seeded.oil_id, "quantity": 1}],
    ).json()
    early = _receive(client, transfer, [3])
    assert early.status_code == 409
    assert error_message(early) == "Transfer must be In Transit for receiving"

    assert client.post(f"/transfers/{transfer['id']}/fulfill", json={}, headers=auth_headers("u-warehouse")).status_code == 200

    over = _receive(client, transfer, [4])
    assert over.status_code == 400
    assert error_message(over) == "Received qty (4) cannot exceed shipped qty (3)"

    partial = _receive(client, transfer, [2])
    assert partial.status_code == 200, partial.text
    assert [line["received_qty"] for line in partial.json()["lines"]] == [2.0, 0.0]
    assert position(client, item_id=seeded.flour_id, location_id=seeded.bar_id)["quantity"] == 2.0
    assert position(client, item_id=seeded.oil_id, location_id=seeded.bar_id)["quantity"] == 0.0


def test_fulfill_segregation_is_a_policy_switch(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)

    first = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1}],
        user_id="u-warehouse",
    ).json()
    assert client.post(f"/transfers/{first['id']}/fulfill", json={}, headers=auth_headers("u-warehouse")).status_code == 200

    settings.sod_transfer_fulfill = True
    second = _create_transfer(
        client,
        from_id=seeded.warehouse_id,
        to_id=seeded.kitchen_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1}],
        user_id="u-warehouse",
    ).json()
    blocked = client.post(f"/transfers/{second['id']}/fulfill", json={}, headers=auth_headers("u-warehouse"))
    assert blocked.status_code == 403
    assert error_code(blocked) == "segregation_of_duties"

    allowed = client.post(f"/transfers/{second['id']}/fulfill", json={}, headers=auth_headers("u-warehouse-2"))
    assert allowed.status_code == 200, allowed.text
