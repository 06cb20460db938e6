import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from prizmatrack.db import get_db
from prizmatrack.errors import NotFound
from prizmatrack.models.client import Client
from prizmatrack.rbac.deps import OrgContext, require_perm
from prizmatrack.schemas.clients import ClientCreateIn, ClientOut, ClientUpdateIn
from prizmatrack.schemas.common import DeletedOut, Envelope, ok

router = APIRouter(prefix="/organization/{organization_id}/clients", tags=["clients"])

def _get_client(db: Session, organization_id: uuid.UUID, client_id: uuid.UUID) -> Client:
    c = db.scalar(select(Client).where(Client.id == client_id, Client.organization_id == organization_id))
    if c is None:
        raise NotFound("client not found")
    return c

@router.post("", response_model=Envelope[ClientOut], status_code=201)
def create_client(
    organization_id: uuid.UUID,
    payload: ClientCreateIn,
    ctx: OrgContext = Depends(require_perm("clients:create")),
    db: Session = Depends(get_db),
) -> dict:
    c = Client(organization_id=organization_id, created_by=ctx.user.id, **payload.model_dump())
    db.add(c)
    db.commit()
    db.refresh(c)
    return ok(ClientOut.model_validate(c))

@router.get("", response_model=Envelope[list[ClientOut]])
def list_clients(
    organization_id: uuid.UUID,
    favorite: bool | None = Query(default=None),
    ctx: OrgContext = Depends(require_perm("clients:view")),
    db: Session = Depends(get_db),
) -> dict:
    q = select(Client).where(Client.organization_id == organization_id)
    if favorite is not None:
        q = q.where(Client.favorite.is_(favorite))
    rows = db.scalars(q.order_by(Client.name)).all()
    return ok([ClientOut.model_validate(r) for r in rows])

@router.get("/{client_id}", response_model=Envelope[ClientOut])
def get_client(
    organization_id: uuid.UUID,
    client_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("clients:view")),
    db: Session = Depends(get_db),
) -> dict:
    return ok(ClientOut.model_validate(_get_client(db, organization_id, client_id)))

@router.patch("/{client_id}", response_model=Envelope[ClientOut])
def update_client(
    organization_id: uuid.UUID,
    client_id: uuid.UUID,
    payload: ClientUpdateIn,
    ctx: OrgContext = Depends(require_perm("clients:edit")),
    db: Session = Depends(get_db),
) -> dict:
    c = _get_client(db, organization_id, client_id)

    # only touch fields the caller sent; explicit null clears optional ones
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field in {"name", "favorite"} and value is None:
            continue
        setattr(c, field, value)

    db.commit()
    db.refresh(c)
    return ok(ClientOut.model_validate(c))

@router.delete("/{client_id}", response_model=Envelope[DeletedOut])
def delete_client(
    organization_id: uuid.UUID,
    client_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("clients:delete")),
    db: Session = Depends(get_db),
) -> dict:
    c = _get_client(db, organization_id, client_id)
    db.delete(c)
    db.commit()
    return ok(DeletedOut(id=client_id))
