import logging

from fastapi.testclient import TestClient

from prizmatrack.errors import Conflict, ValidationFailed

def test_app_error_shape():
    err = ValidationFailed("Invalid data provided.", {"role": "bad"})
    assert err.status_code == 422
    assert err.to_dict() == {"code": "VALIDATION_ERROR", "message": "Invalid data provided.", "fields": {"role": "bad"}}
    assert "fields" not in Conflict("dup").to_dict()

def test_unknown_route_is_enveloped(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json()["data"] is None
    assert r.json()["error"]["code"] == "NOT_FOUND"

def test_wrong_method_is_enveloped(client):
    r = client.put("/auth/redeem", json={})
    assert r.status_code == 405
    assert r.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

def test_unhandled_error_is_generic_500(app, caplog):
    @app.get("/_boom")
    def _boom():
        raise RuntimeError("secret connection string")

    client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR, logger="prizmatrack.errors"):
        r = client.get("/_boom")

    assert r.status_code == 500
    assert r.json() == {"data": None, "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}}
    assert "secret" not in r.text
    assert any("unhandled error" in rec.getMessage() for rec in caplog.records)

def test_health_is_plain_json(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
