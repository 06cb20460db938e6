import re
from datetime import timedelta

from sqlalchemy import func, select

from prizmatrack.auth.tokens import hash_token, now_utc
from prizmatrack.config import settings
from prizmatrack.models.auth_magic_link import AuthMagicLink
from prizmatrack.models.user import User

def _request_magic_token(client, email: str = "magiclink@example.com") -> str:
    r = client.post("/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["data"].get("token")
    assert token, "expected token to be returned in non-prod env"
    return token

def test_magic_link_cannot_be_reused(client):
    token = _request_magic_token(client)

    r1 = client.post("/auth/redeem", json={"token": token})
    assert r1.status_code == 200, r1.text
    assert "access_token" in r1.json()["data"]
    assert r1.json()["error"] is None

    r2 = client.post("/auth/redeem", json={"token": token})
    assert r2.status_code == 410, r2.text
    body = r2.json()
    assert body["data"] is None
    assert body["error"]["code"] == "EXPIRED"
    assert "used" in body["error"]["message"].lower()

def test_magic_link_expires(client, db_session):
    token = _request_magic_token(client)
    token_hash = hash_token(token)

    row = db_session.get(AuthMagicLink, token_hash)
    assert row is not None
    row.expires_at = now_utc() - timedelta(seconds=1)
    db_session.add(row)
    db_session.commit()

    r = client.post("/auth/redeem", json={"token": token})
    assert r.status_code == 410, r.text
    assert "expired" in r.json()["error"]["message"].lower()

def test_unknown_magic_token_is_unauthenticated(client):
    r = client.post("/auth/redeem", json={"token": "not-a-real-token"})
    assert r.status_code == 401, r.text
    assert r.json()["error"]["code"] == "UNAUTHENTICATED"

def test_request_link_rejects_bad_email(client):
    r = client.post("/auth/request-link", json={"email": "not-an-email"})
    assert r.status_code == 422, r.text
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "email" in error["fields"]

def test_repeat_login_reuses_the_same_user(client, db_session):
    for _ in range(2):
        token = _request_magic_token(client, "Repeat@Example.com")
        r = client.post("/auth/redeem", json={"token": token})
        assert r.status_code == 200, r.text

    count = db_session.scalar(select(func.count()).select_from(User).where(User.email == "repeat@example.com"))
    assert count == 1

def test_user_me_requires_bearer_token(client):
    r = client.get("/user/me")
    assert r.status_code == 401
    assert r.json() == {"data": None, "error": {"code": "UNAUTHENTICATED", "message": "missing bearer token"}}

    r = client.get("/user/me", headers={"authorization": "bearer garbage"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHENTICATED"

def test_user_profile_roundtrip(client, login):
    jwt = login("profile@example.com")
    headers = {"authorization": f"bearer {jwt}"}

    r = client.patch("/user/me", json={"name": "Pat Appraiser", "phone": "555-0100"}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["name"] == "Pat Appraiser"

    r = client.get("/user/me", headers=headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["email"] == "profile@example.com"
    assert data["phone"] == "555-0100"

def test_prod_request_link_only_mails_the_token(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "prod")

    r = client.post("/auth/request-link", json={"email": "prod@example.com"})
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data == {"sent": True, "token": None}
    assert "link" not in data

    assert len(outbox) == 1
    assert outbox[0]["To"] == "prod@example.com"
    body = outbox[0].get_payload()[0].get_payload(decode=True).decode()
    m = re.search(r"/auth/redeem\?token=([\w-]+)", body)
    assert m is not None

    r = client.post("/auth/redeem", json={"token": m.group(1)})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["access_token"]

def test_prod_request_link_without_mail_returns_no_token(client, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "prod")

    r = client.post("/auth/request-link", json={"email": "quiet@example.com"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["token"] is None
