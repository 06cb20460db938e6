from prizmatrack.models.auth_magic_link import AuthMagicLink
from prizmatrack.models.client import Client
from prizmatrack.models.invitation import OrgInvitation
from prizmatrack.models.membership import OrgMember
from prizmatrack.models.order import Order, Property
from prizmatrack.models.organization import Organization
from prizmatrack.models.user import User

__all__ = [
    "User",
    "Organization",
    "OrgMember",
    "OrgInvitation",
    "Client",
    "Order",
    "Property",
    "AuthMagicLink",
]
