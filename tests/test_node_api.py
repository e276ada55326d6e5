from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from nodectl.apps.api.server import create_app
from nodectl.apps.bootstrap import init_ctx


def test_end_to_end_lifecycle(api_client):
    r = api_client.post("/spawn", json={})
    assert r.status_code == 200
    body = r.json()
    h1 = body["id"]
    assert body["apiAddr"] == "" and body["gatewayAddr"] == "" and body["grpcAddr"] == ""
    assert body["initialized"] is False
    assert set(body) >= {"id", "apiAddr", "gatewayAddr", "grpcAddr", "initialized", "started", "disposable", "env", "path", "clean"}

    r = api_client.post("/init", params={"id": h1}, json={})
    assert r.status_code == 200 and r.json() == {"initialized": True}

    r = api_client.post("/start", params={"id": h1})
    assert r.status_code == 200
    addrs = r.json()
    assert addrs["apiAddr"] == "/ip4/127.0.0.1/tcp/5001"
    assert addrs["grpcAddr"] == ""

    r = api_client.get("/pid", params={"id": h1})
    assert r.json() == {"pid": 4242}

    r = api_client.post("/stop", params={"id": h1})
    assert r.status_code == 200 and r.content == b""

    r = api_client.post("/cleanup", params={"id": h1})
    assert r.status_code == 200 and r.content == b""

    r = api_client.post("/start", params={"id": h1})
    assert r.status_code == 404
    assert r.json()["error"] == "unknown_handle"

    # повторный cleanup не ошибка
    assert api_client.post("/cleanup", params={"id": h1}).status_code == 200


def test_start_before_init_is_conflict(api_client):
    h = api_client.post("/spawn").json()["id"]
    r = api_client.post("/start", params={"id": h})
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "invalid_state"
    assert body["state"] == "spawned"
    assert body["expected"] == ["initialized", "stopped"]
    assert body["operation"] == "start"


def test_operation_failure_is_bad_request(api_client):
    h = api_client.post("/spawn", json={"fail": ["init"]}).json()["id"]
    r = api_client.post("/init", params={"id": h})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "operation_failed"
    assert body["output"] == "init output: repo is locked"
    assert body["message"].startswith("init output: repo is locked - ")


def test_missing_id_is_validation_error(api_client):
    assert api_client.post("/start").status_code == 422
    assert api_client.get("/version").status_code == 422


def test_version_status_and_nodes(api_client):
    h = api_client.post("/spawn", json={"env": {"IPFS_PATH": "/x"}}).json()["id"]
    assert api_client.get("/version", params={"id": h}).json() == {"version": "0.0.1-fake"}

    st = api_client.get("/status", params={"id": h}).json()
    assert st["state"] == "spawned"
    assert st["env"] == {"IPFS_PATH": "/x"}

    nodes = api_client.get("/nodes").json()["nodes"]
    assert [n["id"] for n in nodes] == [h]


def test_tmp_dir(api_client, base_dir):
    r = api_client.get("/util/tmp-dir", params={"type": "go"})
    assert r.status_code == 200
    p = Path(r.json()["tmpDir"])
    assert p.name.startswith("go_node_")
    assert p.parent == base_dir / "tmp"
    assert not p.exists()

    assert api_client.get("/util/tmp-dir", params={"type": "../etc"}).status_code == 400


def test_health_without_token(api_client):
    assert api_client.get("/health/live").json() == {"ok": True}


def test_token_required_when_configured(ctx, factory):
    init_ctx(ctx.settings.with_overrides(token="s3cret"), factory=factory)
    with TestClient(create_app()) as client:
        assert client.post("/spawn").status_code == 401
        assert client.post("/spawn", headers={"X-Nodectl-Token": "s3cret"}).status_code == 200
        assert client.get("/nodes", headers={"Authorization": "Bearer s3cret"}).status_code == 200
        assert client.get("/health/live").status_code == 200


def test_shutdown_tears_down_disposable_nodes(ctx, factory):
    with TestClient(create_app()) as client:
        h = client.post("/spawn", json={"start": True}).json()["id"]
    assert h not in ctx.registry
    assert factory.nodes[0].calls[-2:] == ["stop", "cleanup"]
