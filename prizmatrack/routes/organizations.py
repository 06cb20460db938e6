import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from prizmatrack import membership as lifecycle
from prizmatrack.auth.context import RequestContext, get_request_context
from prizmatrack.config import settings
from prizmatrack.db import get_db
from prizmatrack.models.client import Client
from prizmatrack.models.enums import Role
from prizmatrack.models.invitation import OrgInvitation
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.order import Order, Property
from prizmatrack.models.organization import Organization
from prizmatrack.ratelimit import rate_limit
from prizmatrack.rbac.deps import OrgContext, get_org_context, require_perm
from prizmatrack.schemas.common import DeletedOut, Envelope, ok
from prizmatrack.schemas.organizations import (
    InviteCreatedOut,
    InviteIn,
    InviteOut,
    InvitePreviewOut,
    JoinIn,
    MemberDetailOut,
    MemberOut,
    MemberRoleIn,
    OrganizationCreateIn,
    OrganizationOut,
    OrganizationUpdateIn,
    PermissionsOut,
    TransferOwnershipIn,
    TransferOwnershipOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organization", tags=["organizations"])

@router.post("", response_model=Envelope[OrganizationOut], status_code=201)
def create_organization(
    payload: OrganizationCreateIn,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    db = ctx.db
    org = Organization(name=payload.name, avatar=payload.avatar)
    db.add(org)
    db.flush()

    # creator is the owner, same transaction
    db.add(OrgMember(organization_id=org.id, user_id=ctx.user.id, role=Role.owner))
    db.commit()
    db.refresh(org)

    logger.info("organization created org=%s owner=%s", org.id, ctx.user.id)
    return ok(OrganizationOut.model_validate(org))

@router.get("", response_model=Envelope[list[OrganizationOut]])
def list_organizations(ctx: RequestContext = Depends(get_request_context)) -> dict:
    q = (
        select(Organization)
        .join(OrgMember, OrgMember.organization_id == Organization.id)
        .where(OrgMember.user_id == ctx.user.id)
        .order_by(Organization.created_at.desc())
    )
    orgs = ctx.db.scalars(q).all()
    return ok([OrganizationOut.model_validate(o) for o in orgs])

@router.get("/{organization_id}", response_model=Envelope[OrganizationOut])
def get_organization(ctx: OrgContext = Depends(get_org_context)) -> dict:
    return ok(OrganizationOut.model_validate(ctx.org))

@router.patch("/{organization_id}", response_model=Envelope[OrganizationOut])
def update_organization(
    payload: OrganizationUpdateIn,
    ctx: OrgContext = Depends(require_perm("organization:edit")),
    db: Session = Depends(get_db),
) -> dict:
    org = ctx.org
    if payload.name is not None:
        org.name = payload.name
    # allow clearing the avatar by sending null
    if "avatar" in payload.model_fields_set:
        org.avatar = payload.avatar

    db.commit()
    db.refresh(org)
    return ok(OrganizationOut.model_validate(org))

@router.delete("/{organization_id}", response_model=Envelope[DeletedOut])
def delete_organization(
    organization_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("organization:delete")),
    db: Session = Depends(get_db),
) -> dict:
    # children first, the store may not cascade (sqlite without fk pragma)
    for model in (Order, Property, Client, OrgInvitation, OrgMember):
        db.execute(delete(model).where(model.organization_id == organization_id))
    db.execute(delete(Organization).where(Organization.id == organization_id))
    db.commit()

    logger.info("organization deleted org=%s by=%s", organization_id, ctx.user.id)
    return ok(DeletedOut(id=organization_id))

# ---------------------------------------------------------------------------
# members
# ---------------------------------------------------------------------------

@router.get("/{organization_id}/members", response_model=Envelope[list[MemberOut]])
def list_members(
    organization_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("members:view")),
    db: Session = Depends(get_db),
) -> dict:
    q = (
        select(OrgMember)
        .where(OrgMember.organization_id == organization_id)
        .order_by(OrgMember.created_at)
    )
    return ok([lifecycle.member_out(m) for m in db.scalars(q).all()])

@router.get("/{organization_id}/members/me", response_model=Envelope[MemberOut])
def get_my_membership(ctx: OrgContext = Depends(get_org_context)) -> dict:
    return ok(lifecycle.member_out(ctx.membership))

@router.get("/{organization_id}/members/{member_id}", response_model=Envelope[MemberDetailOut])
def get_member(
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("members:view_details")),
    db: Session = Depends(get_db),
) -> dict:
    return ok(lifecycle.member_detail_out(lifecycle.get_member(db, organization_id, member_id)))

@router.patch("/{organization_id}/members/{member_id}", response_model=Envelope[MemberOut])
def update_member(
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: MemberRoleIn,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    return ok(lifecycle.update_member_role(ctx, organization_id, member_id, payload.role))

@router.delete("/{organization_id}/members/{member_id}", response_model=Envelope[DeletedOut])
def remove_member(
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    lifecycle.remove_member(ctx, organization_id, member_id)
    return ok(DeletedOut(id=member_id))

# ---------------------------------------------------------------------------
# invite / join / leave / transfer
# ---------------------------------------------------------------------------

@router.post("/{organization_id}/invite", response_model=Envelope[InviteCreatedOut])
def create_invite(
    organization_id: uuid.UUID,
    payload: InviteIn,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    return ok(lifecycle.create_invite(ctx, organization_id, payload.email, payload.role))

@router.get("/{organization_id}/invite", response_model=Envelope[list[InviteOut]])
def list_invites(
    organization_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    return ok(lifecycle.list_invites(ctx, organization_id))

@router.delete("/{organization_id}/invite/{invite_id}", response_model=Envelope[DeletedOut])
def revoke_invite(
    organization_id: uuid.UUID,
    invite_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    lifecycle.revoke_invite(ctx, organization_id, invite_id)
    return ok(DeletedOut(id=invite_id))

# public: the invitee may not have an account yet
@router.get("/{organization_id}/join", response_model=Envelope[InvitePreviewOut])
def preview_invite(
    organization_id: uuid.UUID,
    token: str = Query(min_length=1),
    db: Session = Depends(get_db),
) -> dict:
    return ok(lifecycle.get_invite_preview(db, organization_id, token))

@router.post("/{organization_id}/join", response_model=Envelope[MemberOut])
def join_organization(
    organization_id: uuid.UUID,
    payload: JoinIn,
    ctx: RequestContext = Depends(get_request_context),
    _: None = Depends(
        rate_limit(
            "org:join",
            limit_per_window=settings.rate_limit_join_per_min,
            window_seconds=60,
        )
    ),
) -> dict:
    return ok(lifecycle.join_organization(ctx, organization_id, payload.token))

@router.post("/{organization_id}/leave", response_model=Envelope[DeletedOut])
def leave_organization(
    organization_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    lifecycle.leave_organization(ctx, organization_id)
    return ok(DeletedOut(id=organization_id))

@router.post("/{organization_id}/transfer-ownership", response_model=Envelope[TransferOwnershipOut])
def transfer_ownership(
    organization_id: uuid.UUID,
    payload: TransferOwnershipIn,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    return ok(lifecycle.transfer_ownership(ctx, organization_id, payload.target_user_id))

@router.get("/{organization_id}/permissions", response_model=Envelope[PermissionsOut])
def get_permissions(
    organization_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    return ok(lifecycle.get_organization_permissions(ctx, organization_id))
