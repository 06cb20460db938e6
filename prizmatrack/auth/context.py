"""
Request-scoped identity.

Every handler receives a ``RequestContext`` instead of reaching for a global
session: it carries the authenticated user, the db session and the
"has permission P on organization O" check.
"""

import uuid

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from prizmatrack.auth.deps import get_current_user
from prizmatrack.db import get_db
from prizmatrack.errors import Forbidden, NotFound
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User
from prizmatrack.rbac.perms import permissions_for, role_allows

class RequestContext:
    def __init__(self, user: User, db: Session):
        self.user = user
        self.db = db

    def membership(self, organization_id: uuid.UUID) -> OrgMember | None:
        return self.db.scalar(
            select(OrgMember).where(
                OrgMember.organization_id == organization_id,
                OrgMember.user_id == self.user.id,
            )
        )

    def organization(self, organization_id: uuid.UUID) -> Organization:
        org = self.db.get(Organization, organization_id)
        if org is None:
            raise NotFound("organization not found")
        return org

    def permissions(self, organization_id: uuid.UUID) -> frozenset[str]:
        m = self.membership(organization_id)
        if m is None:
            return frozenset()
        return permissions_for(m.role)

    def has_permission(self, organization_id: uuid.UUID, action: str) -> bool:
        m = self.membership(organization_id)
        return m is not None and role_allows(m.role, action)

    def require(self, organization_id: uuid.UUID, action: str) -> OrgMember:
        """Return the caller's membership if it grants ``action``, else raise."""
        self.organization(organization_id)

        m = self.membership(organization_id)
        if m is None:
            raise Forbidden("not a member of this organization")
        if not role_allows(m.role, action):
            raise Forbidden("forbidden")
        return m

def get_request_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RequestContext:
    return RequestContext(user=user, db=db)
