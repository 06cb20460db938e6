import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from prizmatrack.auth.tokens import new_account_ref
from prizmatrack.db import SessionLocal
from prizmatrack.models.client import Client
from prizmatrack.models.enums import AppraisalType, PropertyType, Role
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.order import Order, Property
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User

@dataclass
class SeedResult:
    owner_email: str
    manager_email: str
    appraiser_email: str
    organization_id: uuid.UUID
    client_id: uuid.UUID
    order_id: uuid.UUID

def get_or_create_user(db: Session, email: str, name: str | None = None) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, name=name, account_ref=new_account_ref())
        db.add(u)
        db.flush()
    return u

def get_or_create_membership(db: Session, user_id: uuid.UUID, organization_id: uuid.UUID, role: Role) -> OrgMember:
    m = db.scalar(
        select(OrgMember).where(
            OrgMember.organization_id == organization_id,
            OrgMember.user_id == user_id,
        )
    )
    if m is None:
        m = OrgMember(organization_id=organization_id, user_id=user_id, role=role)
        db.add(m)
        db.flush()
    elif m.role != role:
        m.role = role
        db.flush()
    return m

def get_or_create_organization(db: Session, name: str) -> Organization:
    o = db.scalar(select(Organization).where(Organization.name == name))
    if o is None:
        o = Organization(name=name)
        db.add(o)
        db.flush()
    return o

def get_or_create_client(db: Session, organization_id: uuid.UUID, name: str, created_by: uuid.UUID) -> Client:
    c = db.scalar(select(Client).where(Client.organization_id == organization_id, Client.name == name))
    if c is None:
        c = Client(
            organization_id=organization_id,
            name=name,
            email="orders@lender.example.com",
            poc="loan desk",
            favorite=True,
            created_by=created_by,
        )
        db.add(c)
        db.flush()
    return c

def get_or_create_order(
    db: Session,
    organization_id: uuid.UUID,
    file_number: str,
    client_id: uuid.UUID,
    appraiser_id: uuid.UUID,
    created_by: uuid.UUID,
) -> Order:
    o = db.scalar(
        select(Order).where(Order.organization_id == organization_id, Order.file_number == file_number)
    )
    if o is not None:
        return o

    prop = Property(
        organization_id=organization_id,
        property_type=PropertyType.singleFamily,
        street="100 Seed St",
        city="Springfield",
        state="IL",
        zip="62701",
    )
    db.add(prop)
    db.flush()

    today = date.today()
    o = Order(
        organization_id=organization_id,
        property_id=prop.id,
        client_id=client_id,
        appraiser_id=appraiser_id,
        file_number=file_number,
        order_date=today,
        due_date=today + timedelta(days=10),
        appraisal_type=AppraisalType.purchase,
        base_fee=Decimal("450.00"),
        tech_fee=Decimal("25.00"),
        created_by=created_by,
    )
    db.add(o)
    db.flush()
    return o

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        owner = get_or_create_user(db, "owner@example.com", "owner")
        manager = get_or_create_user(db, "manager@example.com", "manager")
        appraiser = get_or_create_user(db, "appraiser@example.com", "appraiser")

        org = get_or_create_organization(db, "seeded appraisals")

        get_or_create_membership(db, owner.id, org.id, Role.owner)
        get_or_create_membership(db, manager.id, org.id, Role.manager)
        get_or_create_membership(db, appraiser.id, org.id, Role.appraiser)

        client = get_or_create_client(db, org.id, "seeded lender", created_by=manager.id)
        order = get_or_create_order(
            db,
            org.id,
            "SEED-0001",
            client_id=client.id,
            appraiser_id=appraiser.id,
            created_by=manager.id,
        )

        db.commit()

        return SeedResult(
            owner_email=owner.email,
            manager_email=manager.email,
            appraiser_email=appraiser.email,
            organization_id=org.id,
            client_id=client.id,
            order_id=order.id,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"organization_id={r.organization_id}")
    print(f"client_id={r.client_id}")
    print(f"order_id={r.order_id}")
    print("users:")
    print(f"  owner:     {r.owner_email}")
    print(f"  manager:   {r.manager_email}")
    print(f"  appraiser: {r.appraiser_email}")
