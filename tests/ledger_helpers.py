import uuid

ADMIN_PASSWORD = "correct-horse-battery"
AGENT_API_KEY = "test-agent-key-0123456789abcdef"


def seed_tenant(session_local, name: str = "Harbor Metals") -> str:
    from lotledger.models.tenant import Tenant

    tenant_id = str(uuid.uuid4())
    with session_local() as db:
        db.add(Tenant(id=tenant_id, name=name))
        db.commit()
    return tenant_id


def create_category(client, headers, tenant_id: str, code: str = "ZNC", **extra) -> str:
    res = client.post(
        f"/tenants/{tenant_id}/categories",
        json={"code": code, "name": f"{code} goods", **extra},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["id"]


def create_inbound(client, headers, tenant_id: str, category_id: str, *, batch_no="B1", qty=100, weight=5.0, **extra):
    body = {
        "category_id": category_id,
        "batch_no": batch_no,
        "actual_qty": qty,
        "actual_weight": weight,
        **extra,
    }
    if "X-API-Key" in headers and "attachment" not in body:
        body["attachment"] = {"storage_key": f"images/{uuid.uuid4().hex}.jpg", "content_type": "image/jpeg"}
    res = client.post(f"/tenants/{tenant_id}/inbound", json=body, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def get_balance(client, headers, tenant_id: str, category_id: str, batch_no: str) -> tuple[int, float]:
    res = client.get(
        f"/tenants/{tenant_id}/inventory/balance",
        params={"category_id": category_id, "batch_no": batch_no},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    items = res.json()["items"]
    if not items:
        return 0, 0.0
    assert len(items) == 1
    return items[0]["available_qty"], items[0]["available_weight"]
