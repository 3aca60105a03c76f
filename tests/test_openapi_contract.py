import json
from pathlib import Path

from lotledger.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_ledger_errors_are_documented():
    schema = app.openapi()
    outbound_post = schema["paths"]["/tenants/{tenant_id}/outbound"]["post"]
    assert {"403", "404", "409", "503"} <= set(outbound_post["responses"])
