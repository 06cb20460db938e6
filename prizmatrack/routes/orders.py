import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from prizmatrack.db import get_db
from prizmatrack.errors import NotFound, ValidationFailed
from prizmatrack.models.client import Client
from prizmatrack.models.enums import OrderStatus
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.order import Order, Property
from prizmatrack.rbac.deps import OrgContext, require_perm
from prizmatrack.schemas.common import DeletedOut, Envelope, ok
from prizmatrack.schemas.orders import OrderCreateIn, OrderOut, OrderUpdateIn

router = APIRouter(prefix="/organization/{organization_id}/orders", tags=["orders"])

# never nulled by a partial update
_REQUIRED = {"order_status", "payment_status", "questionnaire", "contract", "sent"}

def _get_order(db: Session, organization_id: uuid.UUID, order_id: uuid.UUID) -> Order:
    o = db.scalar(select(Order).where(Order.id == order_id, Order.organization_id == organization_id))
    if o is None:
        raise NotFound("order not found")
    return o

def _check_references(
    db: Session,
    organization_id: uuid.UUID,
    client_id: uuid.UUID | None,
    appraiser_id: uuid.UUID | None,
) -> None:
    fields: dict[str, str] = {}

    if client_id is not None:
        found = db.scalar(
            select(Client.id).where(Client.id == client_id, Client.organization_id == organization_id)
        )
        if found is None:
            fields["client_id"] = "client not found in this organization"

    if appraiser_id is not None:
        found = db.scalar(
            select(OrgMember.id).where(
                OrgMember.user_id == appraiser_id,
                OrgMember.organization_id == organization_id,
            )
        )
        if found is None:
            fields["appraiser_id"] = "appraiser is not a member of this organization"

    if fields:
        raise ValidationFailed("Invalid data provided.", fields)

@router.post("", response_model=Envelope[OrderOut], status_code=201)
def create_order(
    organization_id: uuid.UUID,
    payload: OrderCreateIn,
    ctx: OrgContext = Depends(require_perm("orders:create")),
    db: Session = Depends(get_db),
) -> dict:
    _check_references(db, organization_id, payload.client_id, payload.appraiser_id)

    prop = Property(organization_id=organization_id, **payload.property.model_dump())
    db.add(prop)
    db.flush()

    o = Order(
        organization_id=organization_id,
        property_id=prop.id,
        created_by=ctx.user.id,
        **payload.model_dump(exclude={"property"}),
    )
    db.add(o)
    db.commit()
    db.refresh(o)
    return ok(OrderOut.model_validate(o))

@router.get("", response_model=Envelope[list[OrderOut]])
def list_orders(
    organization_id: uuid.UUID,
    status: OrderStatus | None = Query(default=None),
    client_id: uuid.UUID | None = Query(default=None),
    ctx: OrgContext = Depends(require_perm("orders:view")),
    db: Session = Depends(get_db),
) -> dict:
    q = select(Order).where(Order.organization_id == organization_id)
    if status is not None:
        q = q.where(Order.order_status == status)
    if client_id is not None:
        q = q.where(Order.client_id == client_id)

    rows = db.scalars(q.order_by(Order.created_at.desc())).all()
    return ok([OrderOut.model_validate(r) for r in rows])

@router.get("/{order_id}", response_model=Envelope[OrderOut])
def get_order(
    organization_id: uuid.UUID,
    order_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("orders:view")),
    db: Session = Depends(get_db),
) -> dict:
    return ok(OrderOut.model_validate(_get_order(db, organization_id, order_id)))

@router.patch("/{order_id}", response_model=Envelope[OrderOut])
def update_order(
    organization_id: uuid.UUID,
    order_id: uuid.UUID,
    payload: OrderUpdateIn,
    ctx: OrgContext = Depends(require_perm("orders:edit")),
    db: Session = Depends(get_db),
) -> dict:
    o = _get_order(db, organization_id, order_id)

    changes = payload.model_dump(exclude_unset=True, exclude={"property"})
    _check_references(db, organization_id, changes.get("client_id"), changes.get("appraiser_id"))

    for field, value in changes.items():
        if field in _REQUIRED and value is None:
            continue
        setattr(o, field, value)

    if payload.property is not None:
        for field, value in payload.property.model_dump(exclude_unset=True).items():
            if value is None and field != "street2":
                continue
            setattr(o.property, field, value)

    db.commit()
    db.refresh(o)
    return ok(OrderOut.model_validate(o))

@router.delete("/{order_id}", response_model=Envelope[DeletedOut])
def delete_order(
    organization_id: uuid.UUID,
    order_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("orders:delete")),
    db: Session = Depends(get_db),
) -> dict:
    o = _get_order(db, organization_id, order_id)
    prop = o.property
    db.delete(o)
    db.delete(prop)
    db.commit()
    return ok(DeletedOut(id=order_id))
