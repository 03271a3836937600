def test_stages_list(client):
    r = client.get("/api/v1/stages")
    assert r.status_code == 200
    stages = r.json()["stages"]
    assert len(stages) == 9
    assert stages[0]["pattern"] == "<source>_history"
    assert stages[8]["inputs"] == ["core", "metrics"]


def test_stage_get(client):
    r = client.get("/api/v1/stages/taxonomy")
    assert r.status_code == 200
    assert r.json()["transformation"] == "vocabulary standardization"


def test_stage_get_unknown(client):
    assert client.get("/api/v1/stages/gold").status_code == 404


def test_names_parse(client):
    r = client.post("/api/v1/names/parse", json={"name": "analytics.order_history_raw"})
    assert r.status_code == 200
    body = r.json()
    assert body["stage"] == "raw"
    assert body["subject"] == "order_history"
    assert body["schema"] == "analytics"


def test_names_parse_strict_custom(client):
    r = client.post("/api/v1/names/parse", json={"name": "board_pack", "allow_custom": False})
    assert r.status_code == 422


def test_names_build(client):
    r = client.post("/api/v1/names/build", json={"stage": "metrics", "subject": "customer", "schema": "dw"})
    assert r.status_code == 200
    body = r.json()
    assert body["qualified"] == "dw.customer_metrics"
    assert body["schema"] == "dw"


def test_names_build_accepts_field_name(client):
    r = client.post("/api/v1/names/build", json={"stage": "raw", "subject": "odoo", "schema_name": "dw"})
    assert r.json()["qualified"] == "dw.odoo_raw"


def test_names_build_unknown_stage(client):
    r = client.post("/api/v1/names/build", json={"stage": "gold", "subject": "customer"})
    assert r.status_code == 422


def test_names_build_bad_subject(client):
    r = client.post("/api/v1/names/build", json={"stage": "raw", "subject": "Odoo Sales"})
    assert r.status_code == 422
    assert "snake_case" in r.json()["detail"]


def test_stage_get_unknown_carries_request_id(client):
    r = client.get("/api/v1/stages/gold", headers={"X-Request-Id": "rid-404"})
    assert r.status_code == 404
    assert r.json() == {"detail": "Unknown stage: 'gold'", "request_id": "rid-404"}
    assert r.headers["X-Request-Id"] == "rid-404"
