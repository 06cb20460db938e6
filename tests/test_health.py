import logging

from prizmatrack.routes import health

def test_ready_when_dependencies_answer(client, monkeypatch):
    monkeypatch.setattr(health, "db_ping", lambda: True)
    monkeypatch.setattr(health, "redis_ping", lambda: True)

    r = client.get("/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "checks": {"db": True, "redis": True}}

def test_ready_hides_failure_detail(client, monkeypatch, caplog):
    def _db_down():
        raise RuntimeError("password authentication failed for user app at db:5432")

    monkeypatch.setattr(health, "db_ping", _db_down)
    monkeypatch.setattr(health, "redis_ping", lambda: True)

    with caplog.at_level(logging.WARNING, logger="prizmatrack.routes.health"):
        r = client.get("/ready")

    assert r.status_code == 503
    assert r.json() == {"status": "unready", "checks": {"db": False, "redis": True}}
    assert "password" not in r.text
    assert "5432" not in r.text
    assert any("readiness check db failed" in rec.getMessage() for rec in caplog.records)

def test_ready_reports_every_failed_check(client, monkeypatch):
    monkeypatch.setattr(health, "db_ping", lambda: False)
    monkeypatch.setattr(health, "redis_ping", lambda: False)

    r = client.get("/ready")
    assert r.status_code == 503
    assert r.json()["checks"] == {"db": False, "redis": False}
