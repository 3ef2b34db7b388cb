from sqlalchemy import func, select

from fnb_erp.core.config import settings
from fnb_erp.models.internal_request import InternalRequest
from helpers import auth_headers, error_code, error_message, position, stock_up


def _create_request(client, lines: list[dict], user_id: str = "u-outlet"):
    return client.post(
        "/internal-requests",
        json={"lines": lines, "notes": "Weekend brunch"},
        headers=auth_headers(user_id),
    )


def _fulfill(client, request: dict, *, location_id: str, issued: list[float], user_id: str = "u-warehouse"):
    return client.post(
        f"/internal-requests/{request['id']}/fulfill",
        json={
            "location_id": location_id,
            "lines": [{"id": line["id"], "issued_qty": qty} for line, qty in zip(request["lines"], issued)],
            "notes": "Picked from aisle 3",
        },
        headers=auth_headers(user_id),
    )


def test_request_issue_and_confirm(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=20, unit_cost=2)

    create_res = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 5}])
    assert create_res.status_code == 201, create_res.text
    request = create_res.json()
    assert request["request_number"] == "REQ-00001"
    assert request["status"] == "PENDING"

    fulfill_res = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[5])
    assert fulfill_res.status_code == 200, fulfill_res.text
    issued = fulfill_res.json()
    assert issued["status"] == "ISSUED"
    assert issued["location_id"] == seeded.warehouse_id
    assert issued["fulfilled_by_id"] == "u-warehouse"
    assert issued["notes"] == "Weekend brunch\n\nFulfillment: Picked from aisle 3"
    assert position(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id)["quantity"] == 15.0

    confirm_res = client.post(
        f"/internal-requests/{request['id']}/confirm",
        json={"lines": [{"id": request["lines"][0]["id"], "confirmed_qty": 5}]},
        headers=auth_headers("u-outlet"),
    )
    assert confirm_res.status_code == 200, confirm_res.text
    confirmed = confirm_res.json()
    assert confirmed["status"] == "CONFIRMED"
    assert confirmed["has_discrepancy"] is False
    assert confirmed["lines"][0]["confirmed_qty"] == 5.0

    txns = client.get(
        f"/inventory/transactions?types=OUTBOUND&reference_id={request['id']}",
        headers=auth_headers("u-staff"),
    ).json()
    assert txns["pagination"]["total"] == 1
    assert txns["items"][0]["qty_delta"] == -5.0
    assert txns["items"][0]["unit_cost"] == 2.0


def test_request_beyond_total_stock_is_refused_before_saving(test_context, seeded):
    client, session_local = test_context
    stock_up(client, item_id=seeded.milk_id, location_id=seeded.warehouse_id, qty=2, unit_cost=1)
    stock_up(client, item_id=seeded.milk_id, location_id=seeded.kitchen_id, qty=1, unit_cost=1)

    res = _create_request(client, [{"item_id": seeded.milk_id, "requested_qty": 5}])
    assert res.status_code == 400
    assert error_code(res) == "insufficient_stock"
    assert error_message(res) == "Insufficient stock for Milk: requested 5, available 3"

    db = session_local()
    try:
        assert db.execute(select(func.count(InternalRequest.id))).scalar_one() == 0
    finally:
        db.close()


def test_requester_cannot_fulfill_own_request(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=5, unit_cost=1)

    request = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 2}], user_id="u-admin").json()
    res = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[2], user_id="u-admin")
    assert res.status_code == 403
    assert error_message(res) == "You cannot fulfill a request you created (segregation of duties)"
    assert position(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id)["quantity"] == 5.0


def test_fulfillment_checks_the_chosen_location(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=2, unit_cost=1)
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.kitchen_id, qty=2, unit_cost=1)

    request = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 3}]).json()
    res = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[3])
    assert res.status_code == 400
    assert error_code(res) == "insufficient_stock"
    assert error_message(res) == "Insufficient stock at location for item. Available: 2, requested: 3"

    fetched = client.get(f"/internal-requests/{request['id']}", headers=auth_headers("u-outlet")).json()
    assert fetched["status"] == "PENDING"


def test_fulfillment_validates_issued_quantities(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)
    request = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 3}]).json()

    too_many = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[4])
    assert too_many.status_code == 400
    assert error_message(too_many) == "Issued qty (4) exceeds requested qty (3)"

    nothing = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[0])
    assert nothing.status_code == 400
    assert error_message(nothing) == "At least one line must issue a positive quantity"


def test_short_confirmation_flags_discrepancy(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)
    stock_up(client, item_id=seeded.oil_id, location_id=seeded.warehouse_id, qty=10, unit_cost=4)

    request = _create_request(
        client,
        [
            {"item_id": seeded.flour_id, "requested_qty": 4},
            {"item_id": seeded.oil_id, "requested_qty": 2},
        ],
    ).json()
    assert _fulfill(client, request, location_id=seeded.warehouse_id, issued=[4, 2]).status_code == 200

    res = client.post(
        f"/internal-requests/{request['id']}/confirm",
        json={"lines": [{"id": request["lines"][0]["id"], "confirmed_qty": 3, "notes": "One bag torn"}]},
        headers=auth_headers("u-outlet"),
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["has_discrepancy"] is True
    assert [line["confirmed_qty"] for line in body["lines"]] == [3.0, 2.0]
    assert "Confirmation (with discrepancies): Quantities differ from issued" in body["notes"]
    # no stock moves on confirmation
    assert position(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id)["quantity"] == 6.0


def test_fulfiller_cannot_confirm_unless_policy_allows(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)

    request = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 1}]).json()
    assert _fulfill(client, request, location_id=seeded.warehouse_id, issued=[1], user_id="u-admin").status_code == 200
    payload = {"lines": [{"id": request["lines"][0]["id"], "confirmed_qty": 1}]}

    blocked = client.post(f"/internal-requests/{request['id']}/confirm", json=payload, headers=auth_headers("u-admin"))
    assert blocked.status_code == 403
    assert error_code(blocked) == "segregation_of_duties"

    settings.sod_request_confirm = False
    allowed = client.post(f"/internal-requests/{request['id']}/confirm", json=payload, headers=auth_headers("u-admin"))
    assert allowed.status_code == 200, allowed.text


def test_cancel_pending_request_only(test_context, seeded):
    client, _ = test_context
    stock_up(client, item_id=seeded.flour_id, location_id=seeded.warehouse_id, qty=10, unit_cost=1)
    request = _create_request(client, [{"item_id": seeded.flour_id, "requested_qty": 1}]).json()

    res = client.post(
        f"/internal-requests/{request['id']}/cancel",
        json={"reason": "Menu changed"},
        headers=auth_headers("u-outlet"),
    )
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "CANCELLED"

    late = _fulfill(client, request, location_id=seeded.warehouse_id, issued=[1])
    assert late.status_code == 409
    assert error_message(late) == "Request must be in Pending status for fulfillment"

    listed = client.get("/internal-requests?status=CANCELLED", headers=auth_headers("u-staff")).json()
    assert listed["pagination"]["total"] == 1
