from prizmatrack.models.enums import Role

_ALL = {Role.owner, Role.manager, Role.appraiser}
_STAFF = {Role.owner, Role.manager}

PERMS: dict[str, set[Role]] = {
    "organization:view": _ALL,
    "organization:edit": _STAFF,
    "organization:delete": _STAFF,
    "organization:transfer": {Role.owner},

    "members:view": _ALL,
    "members:view_details": _STAFF,
    "members:invite": _STAFF,
    "members:edit": {Role.owner},

    "clients:create": _STAFF,
    "clients:view": _ALL,
    "clients:edit": _STAFF,
    "clients:delete": _STAFF,

    "orders:create": _ALL,
    "orders:view": _ALL,
    "orders:edit": _ALL,
    "orders:delete": _STAFF,
}

# roles an inviter may hand out; nobody is invited straight in as owner
INVITABLE_ROLES: dict[Role, set[Role]] = {
    Role.owner: {Role.manager, Role.appraiser},
    Role.manager: {Role.appraiser},
}

def permissions_for(role: Role) -> frozenset[str]:
    return frozenset(action for action, roles in PERMS.items() if role in roles)

def role_allows(role: Role, action: str) -> bool:
    allowed = PERMS.get(action)
    if allowed is None:
        raise RuntimeError(f"unknown permission action: {action}")
    return role in allowed
