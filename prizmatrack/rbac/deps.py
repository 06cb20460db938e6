import uuid

from fastapi import Depends

from prizmatrack.auth.context import RequestContext, get_request_context
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.rbac.perms import PERMS

class OrgContext:
    def __init__(self, org: Organization, membership: OrgMember, request: RequestContext):
        self.org = org
        self.membership = membership
        self.request = request

    @property
    def user(self):
        return self.request.user

def require_perm(action: str):
    if action not in PERMS:
        raise RuntimeError(f"unknown permission action: {action}")

    def _checker(
        organization_id: uuid.UUID,
        ctx: RequestContext = Depends(get_request_context),
    ) -> OrgContext:
        membership = ctx.require(organization_id, action)
        return OrgContext(org=ctx.organization(organization_id), membership=membership, request=ctx)

    return _checker

get_org_context = require_perm("organization:view")
