from pydantic import BaseModel, EmailStr

class RequestLinkIn(BaseModel):
    email: EmailStr

class RequestLinkOut(BaseModel):
    sent: bool = True
    token: str | None = None

class RedeemIn(BaseModel):
    token: str

class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
