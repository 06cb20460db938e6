import uuid
from datetime import datetime
from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from prizmatrack.models.enums import Role

OrgName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]

class OrganizationCreateIn(BaseModel):
    name: OrgName
    avatar: str | None = Field(default=None, max_length=500)

class OrganizationUpdateIn(BaseModel):
    name: OrgName | None = None
    avatar: str | None = Field(default=None, max_length=500)

class OrganizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    avatar: str | None
    created_at: datetime

class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    name: str | None = None
    created_at: datetime

class MemberDetailOut(MemberOut):
    email: str
    phone: str | None = None

class MemberRoleIn(BaseModel):
    role: Role

class InviteIn(BaseModel):
    email: EmailStr
    role: Role = Role.appraiser

class InviteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: Role
    invited_by_user_id: uuid.UUID | None
    expires_at: datetime
    created_at: datetime

class InviteCreatedOut(InviteOut):
    token: str
    join_url: str

class InvitePreviewOut(BaseModel):
    organization_id: uuid.UUID
    organization_name: str
    organization_avatar: str | None
    email: str
    role: Role
    expires_at: datetime

class JoinIn(BaseModel):
    token: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

class TransferOwnershipIn(BaseModel):
    target_user_id: uuid.UUID = Field(validation_alias=AliasChoices("target_user_id", "targetUserId"))

class TransferOwnershipOut(BaseModel):
    organization_id: uuid.UUID
    previous_owner: MemberOut
    new_owner: MemberOut

class PermissionsOut(BaseModel):
    organization_id: uuid.UUID
    role: Role
    permissions: list[str]
