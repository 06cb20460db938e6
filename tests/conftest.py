import os
import uuid

# must be set before prizmatrack.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import prizmatrack.models  # noqa: F401
from prizmatrack import mail
from prizmatrack.config import settings
from prizmatrack.db import Base, get_db
from prizmatrack.main import create_app
from prizmatrack.models.enums import Role
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User

@pytest.fixture()
def db_session() -> Session:
    database_url = os.environ["DATABASE_URL"]

    kwargs: dict = {}
    if database_url.startswith("sqlite"):
        # one shared in-memory db across the TestClient worker threads
        kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def app(db_session: Session):
    app = create_app()

    def _override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    return app

@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)

def _login(client, email: str) -> str:
    r = client.post("/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["data"]["token"]

    r = client.post("/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["data"]["access_token"]

def _auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

@pytest.fixture()
def login(client):
    def _do(email: str) -> str:
        return _login(client, email)

    return _do

@pytest.fixture()
def owner_jwt(client) -> str:
    # unique per test run to avoid collisions
    email = f"owner+{uuid.uuid4().hex[:8]}@example.com"
    return _login(client, email)

@pytest.fixture()
def seeded_org(client, db_session, owner_jwt) -> Organization:
    r = client.post(
        "/organization",
        json={"name": f"seeded-org-{uuid.uuid4().hex[:6]}"},
        headers=_auth(owner_jwt),
    )
    assert r.status_code == 201, r.text
    org_id = uuid.UUID(r.json()["data"]["id"])

    org = db_session.get(Organization, org_id)
    assert org is not None
    return org

@pytest.fixture()
def add_member(client, db_session):
    """Log ``email`` in and grant it ``role`` on the organization directly in the db."""

    def _add(org_id: uuid.UUID, email: str, role: Role) -> str:
        jwt = _login(client, email)
        user = db_session.scalar(select(User).where(User.email == email.lower()))
        assert user is not None

        db_session.add(OrgMember(organization_id=org_id, user_id=user.id, role=role))
        db_session.commit()
        return jwt

    return _add

@pytest.fixture()
def outbox(monkeypatch) -> list:
    """Turn mail on and capture every message instead of talking to an smtp server."""
    sent: list = []

    class _SMTP:
        def __init__(self, host, port, timeout=None):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, username, password):
            pass

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr(settings, "mail_enabled", True)
    monkeypatch.setattr(mail.smtplib, "SMTP", _SMTP)
    return sent

@pytest.fixture()
def file_engine(tmp_path):
    # file-backed so two sessions get two real connections
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'shared.db'}")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()
