"""
Organization membership lifecycle: invite -> join -> role changes ->
ownership transfer -> leave.

Every multi-step write here commits exactly once. Single-use and
single-owner guarantees come from conditional UPDATE ... RETURNING
statements plus the unique indexes on ``org_members``, never from
application-level locks.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prizmatrack import mail
from prizmatrack.auth.context import RequestContext
from prizmatrack.auth.tokens import (
    hash_token,
    invite_expiry,
    is_expired,
    new_invite_token,
    now_utc,
)
from prizmatrack.config import settings
from prizmatrack.errors import Conflict, Expired, Forbidden, NotFound, ValidationFailed
from prizmatrack.models.enums import Role
from prizmatrack.models.invitation import OrgInvitation
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User
from prizmatrack.rbac.perms import INVITABLE_ROLES, permissions_for
from prizmatrack.schemas.organizations import (
    InviteCreatedOut,
    InviteOut,
    InvitePreviewOut,
    MemberDetailOut,
    MemberOut,
    PermissionsOut,
    TransferOwnershipOut,
)

logger = logging.getLogger(__name__)

def _normalize_email(email: str) -> str:
    return email.strip().lower()

def join_url(organization_id: uuid.UUID, token: str) -> str:
    path = settings.org_invite_path.format(organization_id=organization_id)
    return f"{settings.base_url.rstrip('/')}{path}?token={token}"

def member_out(m: OrgMember) -> MemberOut:
    return MemberOut(
        id=m.id,
        organization_id=m.organization_id,
        user_id=m.user_id,
        role=m.role,
        name=m.user.name,
        created_at=m.created_at,
    )

def member_detail_out(m: OrgMember) -> MemberDetailOut:
    return MemberDetailOut(
        **member_out(m).model_dump(),
        email=m.user.email,
        phone=m.user.phone,
    )

def _pending_invite(db: Session, organization_id: uuid.UUID, email: str) -> OrgInvitation | None:
    return db.scalar(
        select(OrgInvitation).where(
            OrgInvitation.organization_id == organization_id,
            OrgInvitation.email == email,
            OrgInvitation.consumed_at.is_(None),
            OrgInvitation.expires_at > now_utc(),
        )
    )

def _find_invite(db: Session, organization_id: uuid.UUID, token: str) -> OrgInvitation:
    inv = db.scalar(
        select(OrgInvitation).where(
            OrgInvitation.organization_id == organization_id,
            OrgInvitation.token_hash == hash_token(token),
        )
    )
    if inv is None:
        raise NotFound("invitation not found")
    if inv.consumed_at is not None:
        raise Expired("invitation already used")
    if is_expired(inv.expires_at):
        raise Expired("invitation expired")
    return inv

# ---------------------------------------------------------------------------
# invitations
# ---------------------------------------------------------------------------

def create_invite(
    ctx: RequestContext,
    organization_id: uuid.UUID,
    email: str,
    role: Role,
) -> InviteCreatedOut:
    inviter = ctx.require(organization_id, "members:invite")
    db = ctx.db

    if role == Role.owner:
        raise ValidationFailed(
            "Invalid data provided.",
            {"role": "ownership can only be transferred, not invited"},
        )
    if role not in INVITABLE_ROLES.get(inviter.role, set()):
        raise Forbidden(f"a {inviter.role.value} cannot invite a {role.value}")

    email = _normalize_email(email)

    existing_member = db.scalar(
        select(OrgMember)
        .join(User, User.id == OrgMember.user_id)
        .where(OrgMember.organization_id == organization_id, User.email == email)
    )
    if existing_member is not None:
        raise Conflict("user is already a member of this organization")

    if _pending_invite(db, organization_id, email) is not None:
        raise Conflict("a pending invitation already exists for this email")

    # an expired leftover would still hold the pending-invite index slot
    db.execute(
        delete(OrgInvitation).where(
            OrgInvitation.organization_id == organization_id,
            OrgInvitation.email == email,
            OrgInvitation.consumed_at.is_(None),
            OrgInvitation.expires_at <= now_utc(),
        )
        .execution_options(synchronize_session=False)
    )

    token = new_invite_token()
    inv = OrgInvitation(
        organization_id=organization_id,
        email=email,
        role=role,
        token_hash=hash_token(token),
        invited_by_user_id=ctx.user.id,
        expires_at=invite_expiry(),
    )
    db.add(inv)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("a pending invitation already exists for this email")
    db.refresh(inv)

    url = join_url(organization_id, token)
    org = ctx.organization(organization_id)
    mail.send_org_invite(email, ctx.user.name or ctx.user.email, org.name, url)

    logger.info("invite created org=%s invite=%s role=%s", organization_id, inv.id, role.value)
    return InviteCreatedOut(
        **InviteOut.model_validate(inv).model_dump(),
        token=token,
        join_url=url,
    )

def list_invites(ctx: RequestContext, organization_id: uuid.UUID) -> list[InviteOut]:
    ctx.require(organization_id, "members:invite")
    q = (
        select(OrgInvitation)
        .where(
            OrgInvitation.organization_id == organization_id,
            OrgInvitation.consumed_at.is_(None),
            OrgInvitation.expires_at > now_utc(),
        )
        .order_by(OrgInvitation.created_at.desc())
    )
    return [InviteOut.model_validate(r) for r in ctx.db.scalars(q).all()]

def revoke_invite(ctx: RequestContext, organization_id: uuid.UUID, invite_id: uuid.UUID) -> None:
    ctx.require(organization_id, "members:invite")
    db = ctx.db

    inv = db.scalar(
        select(OrgInvitation).where(
            OrgInvitation.id == invite_id,
            OrgInvitation.organization_id == organization_id,
            OrgInvitation.consumed_at.is_(None),
        )
    )
    if inv is None:
        raise NotFound("invitation not found")

    db.delete(inv)
    db.commit()
    logger.info("invite revoked org=%s invite=%s", organization_id, invite_id)

def get_invite_preview(db: Session, organization_id: uuid.UUID, token: str) -> InvitePreviewOut:
    inv = _find_invite(db, organization_id, token)
    org = db.get(Organization, organization_id)
    if org is None:
        raise NotFound("invitation not found")
    return InvitePreviewOut(
        organization_id=org.id,
        organization_name=org.name,
        organization_avatar=org.avatar,
        email=inv.email,
        role=inv.role,
        expires_at=inv.expires_at,
    )

# ---------------------------------------------------------------------------
# join / leave
# ---------------------------------------------------------------------------

def _notify_joined(
    db: Session,
    organization_id: uuid.UUID,
    inviter_id: uuid.UUID | None,
    m: OrgMember,
) -> None:
    # the inviter hears back; the owner stands in when the inviter has left
    recipient = None
    if inviter_id is not None:
        recipient = db.scalar(
            select(User)
            .join(OrgMember, OrgMember.user_id == User.id)
            .where(OrgMember.organization_id == organization_id, User.id == inviter_id)
        )
    if recipient is None:
        owner = db.scalar(
            select(OrgMember).where(
                OrgMember.organization_id == organization_id,
                OrgMember.role == Role.owner,
            )
        )
        recipient = owner.user if owner is not None else None
    if recipient is None or recipient.id == m.user_id:
        return

    org = db.get(Organization, organization_id)
    mail.send_invite_accepted(
        recipient.email,
        recipient.name,
        m.user.name or m.user.email,
        org.name if org is not None else "your organization",
    )

def join_organization(ctx: RequestContext, organization_id: uuid.UUID, token: str) -> MemberOut:
    """
    Consume an invitation and create the caller's membership.

    A repeated call with the same token fails with ``Expired``: a consumed
    token is never replayed into a silent success.
    """
    db = ctx.db
    now = now_utc()

    # atomic single-use + expiry gate
    stmt = (
        update(OrgInvitation)
        .where(OrgInvitation.organization_id == organization_id)
        .where(OrgInvitation.token_hash == hash_token(token))
        .where(OrgInvitation.consumed_at.is_(None))
        .where(OrgInvitation.expires_at > now)
        .values(consumed_at=now, consumed_by_user_id=ctx.user.id)
        .returning(OrgInvitation.role, OrgInvitation.invited_by_user_id)
        .execution_options(synchronize_session=False)
    )
    row = db.execute(stmt).first()
    if row is None:
        db.rollback()
        # tells apart unknown / used / expired, always raises
        _find_invite(db, organization_id, token)
        raise Expired("invitation expired")

    if ctx.membership(organization_id) is not None:
        db.rollback()
        raise Conflict("user is already a member of this organization")

    role, inviter_id = row
    m = OrgMember(organization_id=organization_id, user_id=ctx.user.id, role=role)
    db.add(m)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("user is already a member of this organization")
    db.refresh(m)

    logger.info("member joined org=%s user=%s role=%s", organization_id, ctx.user.id, m.role.value)
    _notify_joined(db, organization_id, inviter_id, m)
    return member_out(m)

def leave_organization(ctx: RequestContext, organization_id: uuid.UUID) -> None:
    db = ctx.db

    m = ctx.membership(organization_id)
    if m is None:
        raise NotFound("membership not found")
    if m.role == Role.owner:
        raise Forbidden("the owner must transfer ownership before leaving")

    db.delete(m)
    db.commit()
    logger.info("member left org=%s user=%s", organization_id, ctx.user.id)

# ---------------------------------------------------------------------------
# ownership / roles
# ---------------------------------------------------------------------------

def transfer_ownership(
    ctx: RequestContext,
    organization_id: uuid.UUID,
    target_user_id: uuid.UUID,
) -> TransferOwnershipOut:
    """Caller (owner) becomes manager, target member becomes owner, in one commit."""
    caller = ctx.require(organization_id, "organization:transfer")
    db = ctx.db

    if target_user_id == ctx.user.id:
        raise ValidationFailed(
            "Invalid data provided.",
            {"target_user_id": "cannot transfer ownership to yourself"},
        )

    target = db.scalar(
        select(OrgMember).where(
            OrgMember.organization_id == organization_id,
            OrgMember.user_id == target_user_id,
        )
    )
    if target is None:
        raise NotFound("target user is not a member of this organization")

    # demote first: the partial unique index allows one owner row at a time.
    # the role guard row-locks on postgres, so a concurrent transfer that
    # already demoted this caller matches nothing here.
    demoted = db.scalar(
        update(OrgMember)
        .where(OrgMember.id == caller.id, OrgMember.role == Role.owner)
        .values(role=Role.manager)
        .returning(OrgMember.id)
        .execution_options(synchronize_session=False)
    )
    if demoted is None:
        db.rollback()
        raise Forbidden("only the current owner can transfer ownership")

    promoted = db.scalar(
        update(OrgMember)
        .where(OrgMember.id == target.id, OrgMember.organization_id == organization_id)
        .values(role=Role.owner)
        .returning(OrgMember.id)
        .execution_options(synchronize_session=False)
    )
    if promoted is None:
        db.rollback()
        raise NotFound("target user is not a member of this organization")

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("ownership changed concurrently, retry")

    db.refresh(caller)
    db.refresh(target)

    logger.info(
        "ownership transferred org=%s from=%s to=%s",
        organization_id,
        ctx.user.id,
        target_user_id,
    )
    return TransferOwnershipOut(
        organization_id=organization_id,
        previous_owner=member_out(caller),
        new_owner=member_out(target),
    )

def get_organization_permissions(ctx: RequestContext, organization_id: uuid.UUID) -> PermissionsOut:
    m = ctx.membership(organization_id)
    if m is None:
        raise NotFound("membership not found")
    return PermissionsOut(
        organization_id=organization_id,
        role=m.role,
        permissions=sorted(permissions_for(m.role)),
    )

def get_member(db: Session, organization_id: uuid.UUID, member_id: uuid.UUID) -> OrgMember:
    m = db.scalar(
        select(OrgMember).where(
            OrgMember.id == member_id,
            OrgMember.organization_id == organization_id,
        )
    )
    if m is None:
        raise NotFound("member not found")
    return m

def update_member_role(
    ctx: RequestContext,
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    role: Role,
) -> MemberOut:
    ctx.require(organization_id, "members:edit")
    db = ctx.db

    m = get_member(db, organization_id, member_id)
    if role == Role.owner:
        raise ValidationFailed(
            "Invalid data provided.",
            {"role": "use transfer-ownership to change the owner"},
        )
    if m.role == Role.owner:
        raise Forbidden("the owner's role changes only through an ownership transfer")

    m.role = role
    db.commit()
    db.refresh(m)
    logger.info("member role changed org=%s member=%s role=%s", organization_id, member_id, role.value)
    return member_out(m)

def remove_member(ctx: RequestContext, organization_id: uuid.UUID, member_id: uuid.UUID) -> None:
    ctx.require(organization_id, "members:edit")
    db = ctx.db

    m = get_member(db, organization_id, member_id)
    if m.role == Role.owner:
        raise Forbidden("the owner cannot be removed")

    db.execute(delete(OrgMember).where(OrgMember.id == m.id))
    db.commit()
    logger.info("member removed org=%s member=%s", organization_id, member_id)

