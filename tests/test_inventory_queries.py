import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from ledger_helpers import create_category, create_inbound, seed_tenant
from lotledger.models.inventory import InventoryBalance, OutboundMovement


def _raw_outbound(session_local, *, tenant_id, category_id, inbound_id, qty=1, weight="0.100"):
    with session_local() as db:
        db.add(
            OutboundMovement(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                inbound_id=inbound_id,
                category_id=category_id,
                batch_no="LEGACY",
                outbound_qty=qty,
                outbound_weight=Decimal(weight),
                status="approved",
                created_by="legacy-import",
                approved_by="legacy-import",
                approved_at=datetime.now(timezone.utc),
                created_at=datetime.now(timezone.utc),
            )
        )
        db.commit()


def _codes(body):
    return {warning["code"]: warning["count"] for warning in body["warnings"]}


def test_available_lots_report_remaining_and_skip_exhausted(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    open_lot = create_inbound(client, admin_headers, tenant_id, category_id, batch_no="B1", qty=100, weight=5.0)
    spent_lot = create_inbound(client, admin_headers, tenant_id, category_id, batch_no="B2", qty=10, weight=1.0)
    create_inbound(client, agent_headers, tenant_id, category_id, batch_no="B3")

    client.post(
        f"/tenants/{tenant_id}/outbound",
        json={"inbound_id": open_lot["id"], "qty": 40, "weight": 2.0},
        headers=admin_headers,
    )
    client.post(
        f"/tenants/{tenant_id}/outbound",
        json={"inbound_id": spent_lot["id"], "qty": 10, "weight": 1.0},
        headers=admin_headers,
    )

    res = client.get(f"/tenants/{tenant_id}/inventory/available", headers=agent_headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["degraded"] is False
    assert body["warnings"] == []
    assert body["trace_id"].startswith("diag_")
    assert len(body["items"]) == 1
    lot = body["items"][0]
    assert lot["inbound_id"] == open_lot["id"]
    assert (lot["used_qty"], lot["remaining_qty"]) == (40, 60)
    assert (lot["used_weight"], lot["remaining_weight"]) == (2.0, 3.0)


def test_ledger_lists_lots_with_their_shipments(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    lot = create_inbound(client, admin_headers, tenant_id, category_id, qty=100, weight=5.0)
    pending = create_inbound(client, agent_headers, tenant_id, category_id, batch_no="B2")
    rejected = create_inbound(client, agent_headers, tenant_id, category_id, batch_no="B3")
    client.post(f"/tenants/{tenant_id}/inbound/{rejected['id']}/reject", headers=admin_headers)
    for qty in (10, 15):
        client.post(
            f"/tenants/{tenant_id}/outbound",
            json={"inbound_id": lot["id"], "qty": qty, "weight": 0.5},
            headers=admin_headers,
        )

    res = client.get(f"/tenants/{tenant_id}/inventory/ledger", headers=admin_headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["degraded"] is False
    entries = {entry["inbound"]["id"]: entry for entry in body["items"]}
    assert set(entries) == {lot["id"], pending["id"]}

    entry = entries[lot["id"]]
    assert [row["outbound_qty"] for row in entry["outbounds"]] == [10, 15]
    assert entry["summary"] == {"outbound_count": 2, "used_qty": 25, "used_weight": 1.0}
    assert (entry["remaining_qty"], entry["remaining_weight"]) == (75, 4.0)
    assert entries[pending["id"]]["summary"]["outbound_count"] == 0


def test_missing_lot_reference_degrades_without_failing(test_context, admin_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    lot = create_inbound(client, admin_headers, tenant_id, category_id, qty=100, weight=5.0)
    _raw_outbound(session_local, tenant_id=tenant_id, category_id=category_id, inbound_id=None)

    for path in ("available", "ledger"):
        res = client.get(f"/tenants/{tenant_id}/inventory/{path}", headers=admin_headers)
        assert res.status_code == 200, res.text
        body = res.json()
        assert body["degraded"] is True
        assert _codes(body) == {"missing_lot_reference": 1}
        assert [item.get("inbound_id") or item["inbound"]["id"] for item in body["items"]] == [lot["id"]]


def test_orphan_and_cross_tenant_references_are_reported(test_context, admin_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    other_tenant_id = seed_tenant(session_local, name="Other Co")
    category_id = create_category(client, admin_headers, tenant_id)
    other_category_id = create_category(client, admin_headers, other_tenant_id)
    foreign_lot = create_inbound(client, admin_headers, other_tenant_id, other_category_id)

    _raw_outbound(session_local, tenant_id=tenant_id, category_id=category_id, inbound_id="gone")
    _raw_outbound(session_local, tenant_id=tenant_id, category_id=category_id, inbound_id=foreign_lot["id"])

    res = client.get(f"/tenants/{tenant_id}/inventory/diagnostics", params={"include_balances": False}, headers=admin_headers)
    assert res.status_code == 200, res.text
    assert _codes(res.json()) == {"orphan_lot_reference": 1, "cross_tenant_lot_reference": 1}

    clean = client.get(f"/tenants/{other_tenant_id}/inventory/available", headers=admin_headers).json()
    assert clean["degraded"] is False


def test_query_failure_returns_empty_degraded_result(test_context, admin_headers, monkeypatch):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    create_inbound(client, admin_headers, tenant_id, category_id)

    def broken_usage(db, inbound_ids):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr("lotledger.services.ledger_query_service.get_lot_usage_map", broken_usage)

    res = client.get(f"/tenants/{tenant_id}/inventory/available", headers=admin_headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["items"] == []
    assert body["degraded"] is True
    assert "query_failed" in _codes(body)


def test_diagnostics_verify_cached_balances(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    category_id = create_category(client, admin_headers, tenant_id)
    lot = create_inbound(client, admin_headers, tenant_id, category_id, qty=100, weight=5.0)
    demoted = create_inbound(client, admin_headers, tenant_id, category_id, batch_no="B2", qty=8, weight=1.0)
    client.patch(f"/tenants/{tenant_id}/inbound/{demoted['id']}", json={"actual_qty": 9}, headers=agent_headers)
    client.post(
        f"/tenants/{tenant_id}/outbound",
        json={"inbound_id": lot["id"], "qty": 30, "weight": 1.5},
        headers=admin_headers,
    )

    res = client.get(f"/tenants/{tenant_id}/inventory/diagnostics", headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["degraded"] is False

    with session_local() as db:
        db.execute(
            update(InventoryBalance)
            .where(InventoryBalance.tenant_id == tenant_id, InventoryBalance.batch_no == "B1")
            .values(available_qty=-5)
        )
        db.commit()

    body = client.get(f"/tenants/{tenant_id}/inventory/diagnostics", headers=admin_headers).json()
    assert body["degraded"] is True
    assert _codes(body) == {"negative_balance": 1, "balance_drift": 1}
    drift = next(w for w in body["warnings"] if w["code"] == "balance_drift")
    assert drift["details"][0]["expected_qty"] == 70
    assert drift["details"][0]["available_qty"] == -5

    assert client.get(f"/tenants/{tenant_id}/inventory/diagnostics", headers=agent_headers).status_code == 403


def test_balance_lists_every_key_for_the_tenant(test_context, admin_headers, agent_headers):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    other_tenant_id = seed_tenant(session_local, name="Other Co")
    category_id = create_category(client, admin_headers, tenant_id)
    other_category_id = create_category(client, admin_headers, other_tenant_id)
    create_inbound(client, admin_headers, tenant_id, category_id, batch_no="B2", qty=3, weight=0.3)
    create_inbound(client, admin_headers, tenant_id, category_id, batch_no="B1", qty=4, weight=0.4)
    create_inbound(client, admin_headers, other_tenant_id, other_category_id, batch_no="B1", qty=50, weight=9.0)

    res = client.get(f"/tenants/{tenant_id}/inventory/balance", headers=agent_headers)
    assert res.status_code == 200, res.text
    items = res.json()["items"]
    assert [(item["batch_no"], item["available_qty"], item["available_weight"]) for item in items] == [
        ("B1", 4, 0.4),
        ("B2", 3, 0.3),
    ]
    assert all(item["updated_at"] for item in items)
