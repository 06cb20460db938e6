from fastapi import APIRouter, Depends
from sqlalchemy import select

from prizmatrack.auth.context import RequestContext, get_request_context
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.schemas.common import Envelope, ok
from prizmatrack.schemas.users import UserMembershipOut, UserOut, UserUpdateIn

router = APIRouter(prefix="/user", tags=["users"])

@router.get("/me", response_model=Envelope[UserOut])
def get_me(ctx: RequestContext = Depends(get_request_context)) -> dict:
    return ok(UserOut.model_validate(ctx.user))

@router.patch("/me", response_model=Envelope[UserOut])
def update_me(
    payload: UserUpdateIn,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    user = ctx.user
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    ctx.db.commit()
    ctx.db.refresh(user)
    return ok(UserOut.model_validate(user))

@router.get("/me/organizations", response_model=Envelope[list[UserMembershipOut]])
def list_my_memberships(ctx: RequestContext = Depends(get_request_context)) -> dict:
    q = (
        select(OrgMember, Organization)
        .join(Organization, Organization.id == OrgMember.organization_id)
        .where(OrgMember.user_id == ctx.user.id)
        .order_by(Organization.name)
    )
    rows = ctx.db.execute(q).all()
    return ok(
        [
            UserMembershipOut(organization_id=org.id, organization_name=org.name, role=m.role)
            for m, org in rows
        ]
    )
