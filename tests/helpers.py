from fnb_erp.core.security import create_access_token


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def stock_up(client, *, item_id: str, location_id: str, qty: float, unit_cost: float, user_id: str = "u-warehouse"):
    res = client.post(
        "/inventory/adjust",
        json={
            "item_id": item_id,
            "location_id": location_id,
            "qty_delta": qty,
            "unit_cost": unit_cost,
            "reason": "Opening balance",
        },
        headers=auth_headers(user_id),
    )
    assert res.status_code == 201, res.text
    return res.json()


def position(client, *, item_id: str, location_id: str) -> dict:
    res = client.get(f"/inventory/positions/{item_id}/{location_id}", headers=auth_headers("u-staff"))
    assert res.status_code == 200, res.text
    return res.json()


def create_po(client, *, supplier_id: str, lines: list[dict], user_id: str = "u-buyer") -> dict:
    res = client.post(
        "/purchase-orders",
        json={"supplier_id": supplier_id, "lines": lines},
        headers=auth_headers(user_id),
    )
    assert res.status_code == 201, res.text
    return res.json()


def create_approved_po(
    client,
    *,
    supplier_id: str,
    lines: list[dict],
    creator_id: str = "u-buyer",
    approver_id: str = "u-manager",
) -> dict:
    po = create_po(client, supplier_id=supplier_id, lines=lines, user_id=creator_id)
    submit_res = client.post(f"/purchase-orders/{po['id']}/submit", headers=auth_headers(creator_id))
    assert submit_res.status_code == 200, submit_res.text
    approve_res = client.post(
        f"/purchase-orders/{po['id']}/approve",
        json={"action": "approve"},
        headers=auth_headers(approver_id),
    )
    assert approve_res.status_code == 200, approve_res.text
    return approve_res.json()


def proc_verify(client, *, po: dict, received: list[float], user_id: str = "u-verifier"):
    return client.post(
        "/receiving",
        json={
            "purchase_order_id": po["id"],
            "lines": [
                {"purchase_order_line_id": line["id"], "received_qty": qty}
                for line, qty in zip(po["lines"], received)
            ],
        },
        headers=auth_headers(user_id),
    )


def qc_inspect(client, *, receiving: dict, result: str, split: list[tuple[float, float]], user_id: str = "u-qc"):
    return client.post(
        f"/receiving/{receiving['id']}/qc-inspect",
        json={
            "qc_result": result,
            "lines": [
                {"id": line["id"], "accepted_qty": accepted, "rejected_qty": rejected}
                for line, (accepted, rejected) in zip(receiving["lines"], split)
            ],
        },
        headers=auth_headers(user_id),
    )


def error_code(res) -> str:
    return res.json()["error"]["code"]


def error_message(res) -> str:
    return res.json()["error"]["message"]
