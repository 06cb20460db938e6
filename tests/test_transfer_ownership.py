import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from prizmatrack.auth.context import RequestContext
from prizmatrack.auth.tokens import new_account_ref
from prizmatrack.errors import Forbidden
from prizmatrack.membership import transfer_ownership
from prizmatrack.models.enums import Role
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def user_id(db, email: str) -> uuid.UUID:
    u = db.scalar(select(User).where(User.email == email))
    assert u is not None
    return u.id

def owner_count(db, org_id) -> int:
    db.expire_all()
    return db.scalar(
        select(func.count())
        .select_from(OrgMember)
        .where(OrgMember.organization_id == org_id, OrgMember.role == Role.owner)
    )

def role_of(db, org_id, uid) -> Role:
    db.expire_all()
    m = db.scalar(select(OrgMember).where(OrgMember.organization_id == org_id, OrgMember.user_id == uid))
    assert m is not None
    return m.role

def test_transfer_swaps_roles(client, db_session, add_member, owner_jwt, seeded_org):
    add_member(seeded_org.id, "heir@example.com", Role.manager)
    heir_id = user_id(db_session, "heir@example.com")

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(heir_id)},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["new_owner"]["user_id"] == str(heir_id)
    assert data["new_owner"]["role"] == "owner"
    assert data["previous_owner"]["role"] == "manager"

    assert owner_count(db_session, seeded_org.id) == 1
    assert role_of(db_session, seeded_org.id, heir_id) == Role.owner
    previous_id = uuid.UUID(data["previous_owner"]["user_id"])
    assert role_of(db_session, seeded_org.id, previous_id) == Role.manager

def test_transfer_accepts_snake_case(client, db_session, add_member, owner_jwt, seeded_org):
    add_member(seeded_org.id, "snake@example.com", Role.appraiser)
    target = user_id(db_session, "snake@example.com")

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"target_user_id": str(target)},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 200, r.text
    assert role_of(db_session, seeded_org.id, target) == Role.owner

def test_previous_owner_can_leave_after_transfer(client, db_session, add_member, owner_jwt, seeded_org):
    heir_jwt = add_member(seeded_org.id, "next@example.com", Role.manager)
    heir_id = user_id(db_session, "next@example.com")

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(heir_id)},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 200, r.text

    # the new owner is now pinned, the old one is free to go
    r = client.post(f"/organization/{seeded_org.id}/leave", headers=auth(heir_jwt))
    assert r.status_code == 403
    r = client.post(f"/organization/{seeded_org.id}/leave", headers=auth(owner_jwt))
    assert r.status_code == 200, r.text

    assert owner_count(db_session, seeded_org.id) == 1

def test_only_owner_can_transfer(client, db_session, add_member, owner_jwt, seeded_org):
    manager_jwt = add_member(seeded_org.id, "mgr@example.com", Role.manager)
    add_member(seeded_org.id, "appr@example.com", Role.appraiser)
    target = user_id(db_session, "appr@example.com")

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(target)},
        headers=auth(manager_jwt),
    )
    assert r.status_code == 403, r.text
    assert owner_count(db_session, seeded_org.id) == 1
    assert role_of(db_session, seeded_org.id, target) == Role.appraiser

def test_transfer_to_self_is_invalid(client, db_session, owner_jwt, seeded_org):
    me = client.get("/user/me", headers=auth(owner_jwt)).json()["data"]["id"]

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": me},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 422, r.text
    assert "target_user_id" in r.json()["error"]["fields"]

def test_transfer_to_non_member(client, db_session, login, owner_jwt, seeded_org):
    login("outsider@example.com")
    outsider = user_id(db_session, "outsider@example.com")

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(outsider)},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 404, r.text
    assert owner_count(db_session, seeded_org.id) == 1

def test_transfer_is_not_repeatable_by_demoted_owner(client, db_session, add_member, owner_jwt, seeded_org):
    add_member(seeded_org.id, "first@example.com", Role.manager)
    add_member(seeded_org.id, "second@example.com", Role.manager)

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(user_id(db_session, "first@example.com"))},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 200, r.text

    r = client.post(
        f"/organization/{seeded_org.id}/transfer-ownership",
        json={"targetUserId": str(user_id(db_session, "second@example.com"))},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 403, r.text
    assert owner_count(db_session, seeded_org.id) == 1

def test_store_rejects_a_second_owner(db_session, login, seeded_org):
    login("usurper@example.com")
    uid = user_id(db_session, "usurper@example.com")

    db_session.add(OrgMember(organization_id=seeded_org.id, user_id=uid, role=Role.owner))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()

    assert owner_count(db_session, seeded_org.id) == 1

def test_concurrent_transfers_leave_one_owner(file_engine):
    SessionLocal = sessionmaker(bind=file_engine, autoflush=False)

    with SessionLocal() as s1, SessionLocal() as s2:
        org = Organization(name="two-heirs")
        owner = User(email="boss@example.com", account_ref=new_account_ref())
        first = User(email="first-heir@example.com", account_ref=new_account_ref())
        second = User(email="second-heir@example.com", account_ref=new_account_ref())
        s1.add_all([org, owner, first, second])
        s1.flush()
        org_id, owner_id, first_id, second_id = org.id, owner.id, first.id, second.id
        s1.add_all(
            [
                OrgMember(organization_id=org_id, user_id=owner_id, role=Role.owner),
                OrgMember(organization_id=org_id, user_id=first_id, role=Role.manager),
                OrgMember(organization_id=org_id, user_id=second_id, role=Role.manager),
            ]
        )
        s1.commit()

        # the second session still sees the owner row from before the first transfer lands
        stale = RequestContext(s2.get(User, owner_id), s2)
        assert stale.membership(org_id).role == Role.owner

        out = transfer_ownership(RequestContext(s1.get(User, owner_id), s1), org_id, first_id)
        assert out.new_owner.user_id == first_id

        with pytest.raises(Forbidden):
            transfer_ownership(stale, org_id, second_id)

        assert owner_count(s1, org_id) == 1
        assert role_of(s1, org_id, first_id) == Role.owner
        assert role_of(s1, org_id, second_id) == Role.manager
        assert role_of(s1, org_id, owner_id) == Role.manager
