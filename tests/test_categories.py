from ledger_helpers import create_category, create_inbound, seed_tenant

MOISTURE_SCHEMA = {
    "fields": [
        {"name": "moisture_percent", "type": "number", "required": True},
        {"name": "grade", "type": "string"},
    ]
}


def test_create_and_list_categories(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)

    res = client.post(
        f"/tenants/{tenant_id}/categories",
        json={"code": "znc", "name": "Zinc concentrate", "field_schema": MOISTURE_SCHEMA},
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["code"] == "ZNC"
    assert body["is_active"] is True
    assert body["field_schema"]["fields"][0]["name"] == "moisture_percent"

    duplicate = client.post(
        f"/tenants/{tenant_id}/categories",
        json={"code": "ZNC", "name": "Zinc again"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 400

    listing = client.get(f"/tenants/{tenant_id}/categories", headers=agent_headers)
    assert listing.status_code == 200
    assert [item["code"] for item in listing.json()] == ["ZNC"]


def test_category_writes_require_admin_and_known_tenant(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)

    res = client.post(
        f"/tenants/{tenant_id}/categories",
        json={"code": "PB", "name": "Lead"},
        headers=agent_headers,
    )
    assert res.status_code == 403

    res = client.post("/tenants/nowhere/categories", json={"code": "PB", "name": "Lead"}, headers=admin_headers)
    assert res.status_code == 404


def test_referenced_category_only_toggles_active(test_context, admin_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id, code="CU")
    base = f"/tenants/{tenant_id}/categories/{category_id}"

    renamed = client.patch(base, json={"name": "Copper concentrate"}, headers=admin_headers)
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["name"] == "Copper concentrate"

    create_inbound(client, admin_headers, tenant_id, category_id)

    locked = client.patch(base, json={"code": "CU2"}, headers=admin_headers)
    assert locked.status_code == 400

    deactivated = client.patch(base, json={"is_active": False}, headers=admin_headers)
    assert deactivated.status_code == 200, deactivated.text
    assert deactivated.json()["is_active"] is False

    assert client.get(f"/tenants/{tenant_id}/categories", headers=admin_headers).json() == []
    with_inactive = client.get(
        f"/tenants/{tenant_id}/categories", params={"include_inactive": True}, headers=admin_headers
    ).json()
    assert [item["id"] for item in with_inactive] == [category_id]

    res = client.post(
        f"/tenants/{tenant_id}/inbound",
        json={"category_id": category_id, "batch_no": "B7", "actual_qty": 1, "actual_weight": 1},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert "inactive" in res.json()["error"]["message"]


def test_extra_fields_follow_category_schema(test_context, admin_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id, field_schema=MOISTURE_SCHEMA)
    url = f"/tenants/{tenant_id}/inbound"
    body = {"category_id": category_id, "batch_no": "B1", "actual_qty": 1, "actual_weight": 1}

    missing = client.post(url, json=body, headers=admin_headers)
    assert missing.status_code == 400
    assert "moisture_percent" in missing.json()["error"]["message"]

    wrong_type = client.post(url, json={**body, "extra_fields": {"moisture_percent": "wet"}}, headers=admin_headers)
    assert wrong_type.status_code == 400

    unknown = client.post(
        url,
        json={**body, "extra_fields": {"moisture_percent": 8.5, "colour": "grey"}},
        headers=admin_headers,
    )
    assert unknown.status_code == 400

    ok = client.post(
        url,
        json={**body, "extra_fields": {"moisture_percent": 8.5, "grade": "A"}},
        headers=admin_headers,
    )
    assert ok.status_code == 200, ok.text
    detail = client.get(f"{url}/{ok.json()['id']}", headers=admin_headers).json()
    assert detail["extra_fields"] == {"moisture_percent": 8.5, "grade": "A"}
