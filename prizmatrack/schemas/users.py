import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prizmatrack.models.enums import Role

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str | None
    phone: str | None
    created_at: datetime

class UserUpdateIn(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=40)

class UserMembershipOut(BaseModel):
    organization_id: uuid.UUID
    organization_name: str
    role: Role
