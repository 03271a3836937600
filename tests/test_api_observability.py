from fastapi.testclient import TestClient

from stagewise.api.main import app


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/api/v1/health/live").json() == {"status": "alive"}


def test_ready_with_writable_workspace(client):
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready"}


def test_ready_with_unwritable_workspace(client, tmp_path, monkeypatch):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    monkeypatch.setenv("STAGEWISE_WORKSPACE", str(blocker / "ws"))
    from stagewise.core.config import reset_settings

    reset_settings()
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 503
    assert r.json()["status"] == "not_ready"


def test_request_id_header_roundtrip(client):
    r = client.get("/api/v1/health/live")
    assert "X-Request-Id" in r.headers
    assert len(r.headers["X-Request-Id"]) > 10


def test_request_id_passthrough(client):
    rid = "test-rid-123"
    r = client.get("/api/v1/health/live", headers={"X-Request-Id": rid})
    assert r.headers.get("X-Request-Id") == rid


def test_metrics_snapshot_counts_requests(client):
    client.get("/api/v1/health/live")
    client.post("/api/v1/docs/lint", json={"text": "# x\n"})
    r = client.get("/api/v1/metrics/snapshot")
    assert r.status_code == 200
    body = r.json()
    assert body["requests_total"] >= 2
    assert body["health_live"] == 1
    assert body["docs_lint_runs"] == 1


def test_prometheus_export(client):
    client.get("/api/v1/stages")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "stagewise_http_requests_total" in r.text


def test_unhandled_errors_are_shaped(monkeypatch):
    from stagewise.api.endpoints import stages

    def boom():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(stages, "list_stages", boom)
    c = TestClient(app, raise_server_exceptions=False)
    r = c.get("/api/v1/stages", headers={"X-Request-Id": "rid-500"})
    assert r.status_code == 500
    body = r.json()
    assert body["detail"] == "Internal Server Error"
    assert body["request_id"] == "rid-500"
    assert "secret" not in r.text


def test_error_status_mapping():
    from stagewise.api.middleware.error_shaping import error_detail, status_for
    from stagewise.core.errors import (
        CircularDependencyError,
        ManifestError,
        NamingError,
        StagewiseError,
        StoreError,
        UnknownStageError,
    )

    assert status_for(UnknownStageError("gold")) == 404
    assert status_for(CircularDependencyError(["a", "b"])) == 409
    assert status_for(NamingError("x")) == 422
    assert status_for(StoreError("x")) == 400
    assert status_for(StagewiseError("x")) == 422
    assert error_detail(ManifestError("bad", ["models.0: nope"]))["problems"] == ["models.0: nope"]
    assert error_detail(NamingError("plain")) == "plain"


def test_sql_render_failure_is_422(client):
    payload = {
        "manifest": {"project": "p", "models": [{"name": "a_raw", "stage": "raw", "inputs": []}]},
        "force": True,
    }
    r = client.post("/api/v1/manifests/sql", json=payload)
    assert r.status_code == 422
    assert "exactly one input" in r.json()["detail"]
