import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

ClientName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]

class ClientFields(BaseModel):
    phone: str | None = Field(default=None, max_length=40)
    email: EmailStr | None = None
    street: str | None = Field(default=None, max_length=200)
    street2: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=120)
    state: str | None = Field(default=None, max_length=60)
    zip: str | None = Field(default=None, max_length=20)
    website: str | None = Field(default=None, max_length=500)
    poc: str | None = Field(default=None, max_length=200)
    note: str | None = None

class ClientCreateIn(ClientFields):
    name: ClientName
    favorite: bool = False

class ClientUpdateIn(ClientFields):
    name: ClientName | None = None
    favorite: bool | None = None

class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    phone: str | None
    email: str | None
    street: str | None
    street2: str | None
    city: str | None
    state: str | None
    zip: str | None
    website: str | None
    poc: str | None
    note: str | None
    favorite: bool
    created_at: datetime
