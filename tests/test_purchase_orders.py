from sqlalchemy import select

from fnb_erp.models.audit_log import AuditLog
from helpers import auth_headers, create_approved_po, create_po, error_code, error_message


def test_purchase_order_lifecycle_to_sent(test_context, seeded):
    client, session_local = test_context

    po = create_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[
            {"item_id": seeded.flour_id, "quantity": 10, "unit_cost": 5},
            {"item_id": seeded.milk_id, "quantity": 2.5, "unit_cost": 1.2},
        ],
    )
    assert po["po_number"] == "PO-00001"
    assert po["status"] == "DRAFT"
    assert po["currency"] == "USD"
    assert po["total_amount"] == 53.0
    assert [line["outstanding_qty"] for line in po["lines"]] == [10.0, 2.5]

    submit_res = client.post(f"/purchase-orders/{po['id']}/submit", headers=auth_headers("u-buyer"))
    assert submit_res.status_code == 200, submit_res.text
    assert submit_res.json()["status"] == "PENDING_APPROVAL"

    approve_res = client.post(
        f"/purchase-orders/{po['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers("u-manager"),
    )
    assert approve_res.status_code == 200, approve_res.text
    approved = approve_res.json()
    assert approved["status"] == "APPROVED"
    assert approved["approved_by_id"] == "u-manager"
    assert approved["approved_at"] is not None

    send_res = client.post(f"/purchase-orders/{po['id']}/send", headers=auth_headers("u-buyer"))
    assert send_res.status_code == 200, send_res.text
    assert send_res.json()["status"] == "SENT"

    db = session_local()
    try:
        actions = db.execute(
            select(AuditLog.action).where(AuditLog.entity_id == po["id"]).order_by(AuditLog.created_at)
        ).scalars().all()
    finally:
        db.close()
    assert set(actions) == {"po:create", "po:submit", "po:approve", "po:send"}


def test_creator_cannot_approve_own_purchase_order(test_context, seeded):
    client, _ = test_context

    po = create_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1, "unit_cost": 1}],
        user_id="u-admin",
    )
    client.post(f"/purchase-orders/{po['id']}/submit", headers=auth_headers("u-admin"))

    res = client.post(
        f"/purchase-orders/{po['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers("u-admin"),
    )
    assert res.status_code == 403, res.text
    assert error_code(res) == "segregation_of_duties"
    assert error_message(res) == "You cannot approve your own purchase order"

    fetched = client.get(f"/purchase-orders/{po['id']}", headers=auth_headers("u-admin")).json()
    assert fetched["status"] == "PENDING_APPROVAL"


def test_reject_cancels_and_records_reason(test_context, seeded):
    client, _ = test_context

    po = create_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1, "unit_cost": 1}],
    )
    client.post(f"/purchase-orders/{po['id']}/submit", headers=auth_headers("u-buyer"))

    res = client.post(
        f"/purchase-orders/{po['id']}/approve",
        json={"action": "reject", "reason": "Price too high"},
        headers=auth_headers("u-manager"),
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["status"] == "CANCELLED"
    assert "[Rejected: Price too high]" in body["notes"]

    again = client.post(
        f"/purchase-orders/{po['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers("u-manager"),
    )
    assert again.status_code == 409
    assert error_message(again) == "Only pending POs can be approved/rejected"


def test_only_draft_purchase_orders_can_be_edited(test_context, seeded):
    client, _ = test_context

    po = create_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 1, "unit_cost": 1}],
    )
    edit_res = client.put(
        f"/purchase-orders/{po['id']}",
        json={
            "notes": "Deliver before noon",
            "lines": [{"item_id": seeded.oil_id, "quantity": 4, "unit_cost": 7.5}],
        },
        headers=auth_headers("u-buyer"),
    )
    assert edit_res.status_code == 200, edit_res.text
    edited = edit_res.json()
    assert edited["notes"] == "Deliver before noon"
    assert edited["total_amount"] == 30.0
    assert [line["item_id"] for line in edited["lines"]] == [seeded.oil_id]

    client.post(f"/purchase-orders/{po['id']}/submit", headers=auth_headers("u-buyer"))
    locked_res = client.put(
        f"/purchase-orders/{po['id']}",
        json={"notes": "too late"},
        headers=auth_headers("u-buyer"),
    )
    assert locked_res.status_code == 409
    assert error_code(locked_res) == "invalid_state"
    assert error_message(locked_res) == "Only draft POs can be edited"


def test_create_purchase_order_validates_catalog_references(test_context, seeded):
    client, _ = test_context

    unknown_item = client.post(
        "/purchase-orders",
        json={"supplier_id": seeded.supplier_id, "lines": [{"item_id": "nope", "quantity": 1, "unit_cost": 1}]},
        headers=auth_headers("u-buyer"),
    )
    assert unknown_item.status_code == 404
    assert error_message(unknown_item) == "Item nope not found"

    no_lines = client.post(
        "/purchase-orders",
        json={"supplier_id": seeded.supplier_id, "lines": []},
        headers=auth_headers("u-buyer"),
    )
    assert no_lines.status_code == 422

    zero_qty = client.post(
        "/purchase-orders",
        json={"supplier_id": seeded.supplier_id, "lines": [{"item_id": seeded.flour_id, "quantity": 0, "unit_cost": 1}]},
        headers=auth_headers("u-buyer"),
    )
    assert zero_qty.status_code == 422


def test_cancel_approved_purchase_order(test_context, seeded):
    client, _ = test_context

    po = create_approved_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[{"item_id": seeded.flour_id, "quantity": 3, "unit_cost": 2}],
    )
    res = client.post(
        f"/purchase-orders/{po['id']}/cancel",
        json={"reason": "Supplier out of stock"},
        headers=auth_headers("u-manager-2"),
    )
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "CANCELLED"
    assert "[Cancelled: Supplier out of stock]" in res.json()["notes"]


def test_list_purchase_orders_filters_by_status(test_context, seeded):
    client, _ = test_context

    create_po(client, supplier_id=seeded.supplier_id, lines=[{"item_id": seeded.flour_id, "quantity": 1, "unit_cost": 1}])
    create_approved_po(
        client,
        supplier_id=seeded.supplier_id,
        lines=[{"item_id": seeded.milk_id, "quantity": 1, "unit_cost": 1}],
    )

    res = client.get("/purchase-orders?status=APPROVED", headers=auth_headers("u-staff"))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["pagination"]["total"] == 1
    assert body["items"][0]["po_number"] == "PO-00002"

    all_res = client.get("/purchase-orders?status=draft,approved&limit=1", headers=auth_headers("u-staff"))
    assert all_res.json()["pagination"]["total"] == 2
    assert all_res.json()["pagination"]["has_next"] is True

    bad = client.get("/purchase-orders?status=SHIPPED", headers=auth_headers("u-staff"))
    assert bad.status_code == 400
    assert error_message(bad) == "Unknown status SHIPPED"


def test_purchase_order_permissions(test_context, seeded):
    client, _ = test_context

    res = client.post(
        "/purchase-orders",
        json={"supplier_id": seeded.supplier_id, "lines": [{"item_id": seeded.flour_id, "quantity": 1, "unit_cost": 1}]},
        headers=auth_headers("u-outlet"),
    )
    assert res.status_code == 403
    assert error_code(res) == "forbidden"

    missing = client.get("/purchase-orders/does-not-exist", headers=auth_headers("u-staff"))
    assert missing.status_code == 404
