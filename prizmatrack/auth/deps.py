import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from prizmatrack.auth.tokens import decode_access_token
from prizmatrack.db import get_db
from prizmatrack.errors import Unauthenticated
from prizmatrack.models.user import User

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or creds.scheme.lower() != "bearer":
        raise Unauthenticated("missing bearer token")

    try:
        payload = decode_access_token(creds.credentials)
        account_ref = str(payload["sub"])
    except (jwt.PyJWTError, KeyError):
        raise Unauthenticated("invalid token")

    user = db.scalar(select(User).where(User.account_ref == account_ref))
    if user is None:
        raise Unauthenticated("user not found")

    return user
