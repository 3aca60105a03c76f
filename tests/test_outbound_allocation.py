from ledger_helpers import create_category, create_inbound, get_balance, seed_tenant


def _ship(client, headers, tenant_id, inbound_id, qty, weight, **extra):
    return client.post(
        f"/tenants/{tenant_id}/outbound",
        json={"inbound_id": inbound_id, "qty": qty, "weight": weight, **extra},
        headers=headers,
    )


def test_review_then_ship_scenario(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)

    lot = create_inbound(client, agent_headers, tenant_id, category_id, qty=100, weight=5.0)
    assert lot["status"] == "pending_review"
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (0, 0.0)

    client.post(f"/tenants/{tenant_id}/inbound/{lot['id']}/approve", headers=admin_headers)
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (100, 5.0)

    first = _ship(client, admin_headers, tenant_id, lot["id"], 40, 2.0, destination="Port terminal 3")
    assert first.status_code == 200, first.text
    assert first.json()["remaining_qty"] == 60
    assert first.json()["remaining_weight"] == 3.0
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (60, 3.0)

    second = _ship(client, admin_headers, tenant_id, lot["id"], 70, 2.0)
    assert second.status_code == 409
    error = second.json()["error"]
    assert error["code"] == "capacity_exceeded"
    assert error["details"]["remaining_qty"] == 60
    assert error["details"]["requested_qty"] == 70
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (60, 3.0)

    listing = client.get(f"/tenants/{tenant_id}/outbound", params={"inbound_id": lot["id"]}, headers=admin_headers)
    assert listing.status_code == 200, listing.text
    body = listing.json()
    assert body["pagination"]["total"] == 1
    shipped = body["items"][0]
    assert shipped["outbound_qty"] == 40
    assert shipped["category_id"] == category_id
    assert shipped["batch_no"] == "B1"
    assert shipped["status"] == "approved"
    assert shipped["destination"] == "Port terminal 3"

    history = client.get(f"/tenants/{tenant_id}/history/outbound/{shipped['id']}", headers=admin_headers).json()
    assert [item["action"] for item in history["items"]] == ["create"]


def test_weight_ceiling_applies_independently(test_context, admin_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    lot = create_inbound(client, admin_headers, tenant_id, category_id, qty=100, weight=5.0)

    res = _ship(client, admin_headers, tenant_id, lot["id"], 10, 5.001)
    assert res.status_code == 409
    assert res.json()["error"]["details"]["remaining_weight"] == "5.000"

    exact = _ship(client, admin_headers, tenant_id, lot["id"], 100, 5.0)
    assert exact.status_code == 200, exact.text
    assert exact.json() == {"id": exact.json()["id"], "remaining_qty": 0, "remaining_weight": 0.0}

    exhausted = _ship(client, admin_headers, tenant_id, lot["id"], 1, 0.001)
    assert exhausted.status_code == 409
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (0, 0.0)


def test_only_approved_lots_of_the_same_tenant_can_ship(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    other_tenant_id = seed_tenant(session_local, name="Other Co")
    category_id = create_category(client, admin_headers, tenant_id)
    other_category_id = create_category(client, admin_headers, other_tenant_id)

    pending = create_inbound(client, agent_headers, tenant_id, category_id)
    res = _ship(client, admin_headers, tenant_id, pending["id"], 1, 0.1)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"

    foreign = create_inbound(client, admin_headers, other_tenant_id, other_category_id)
    assert _ship(client, admin_headers, tenant_id, foreign["id"], 1, 0.1).status_code == 404
    assert _ship(client, admin_headers, tenant_id, "missing", 1, 0.1).status_code == 404
    assert get_balance(client, admin_headers, other_tenant_id, other_category_id, "B1") == (100, 5.0)


def test_outbound_requires_admin_and_positive_amounts(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    lot = create_inbound(client, admin_headers, tenant_id, category_id)

    res = _ship(client, agent_headers, tenant_id, lot["id"], 1, 0.1)
    assert res.status_code == 403

    res = _ship(client, admin_headers, tenant_id, lot["id"], 0, 0.1)
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "validation_error"

    res = _ship(client, admin_headers, tenant_id, lot["id"], 1, 0)
    assert res.status_code == 422
    assert get_balance(client, admin_headers, tenant_id, category_id, "B1") == (100, 5.0)
