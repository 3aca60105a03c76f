from datetime import timedelta

from ledger_helpers import ADMIN_PASSWORD, seed_tenant
from lotledger.core.security import create_access_token, hash_password, verify_password


def test_admin_login_issues_usable_token(test_context):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)

    res = client.post("/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "admin"

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    me = client.get("/auth/me", headers=headers)
    assert me.json() == {"id": "admin", "role": "admin"}
    assert client.get(f"/tenants/{tenant_id}/inventory/balance", headers=headers).status_code == 200


def test_oauth_form_login_for_swagger(test_context):
    client, _ = test_context
    res = client.post("/auth/token", data={"username": "admin", "password": ADMIN_PASSWORD})
    assert res.status_code == 200, res.text
    assert res.json()["role"] == "admin"


def test_wrong_password_is_unauthorized(test_context):
    client, _ = test_context
    res = client.post("/auth/login", json={"username": "admin", "password": "nope"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "unauthorized"


def test_agent_key_resolves_agent_actor(test_context, agent_headers):
    client, _ = test_context
    res = client.get("/auth/me", headers=agent_headers)
    assert res.status_code == 200
    assert res.json() == {"id": "agent", "role": "agent"}


def test_missing_or_bad_credentials_are_rejected(test_context):
    client, session_local = test_context
    tenant_id = seed_tenant(session_local)
    url = f"/tenants/{tenant_id}/inventory/available"

    res = client.get(url)
    assert res.status_code == 401
    error = res.json()["error"]
    assert error["code"] == "unauthorized"
    assert error["path"] == url
    assert error["request_id"]

    assert client.get(url, headers={"X-API-Key": "guess"}).status_code == 401
    assert client.get(url, headers={"Authorization": "Bearer not-a-token"}).status_code == 401

    expired = create_access_token("admin", "admin", expires_delta=timedelta(minutes=-1))
    assert client.get(url, headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    agent_token = create_access_token("agent", "agent")
    assert client.get(url, headers={"Authorization": f"Bearer {agent_token}"}).status_code == 401


def test_request_id_is_echoed(test_context):
    client, _ = test_context
    res = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert res.json() == {"ok": True}
    assert res.headers["X-Request-ID"] == "req-123"
    assert "X-API-Timeout-Hint-Ms" in res.headers


def test_password_hash_round_trip():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("other", hashed)
