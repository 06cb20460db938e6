from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from prizmatrack import mail
from prizmatrack.auth.tokens import (
    hash_token,
    is_expired,
    issue_access_token,
    magic_link_expiry,
    new_account_ref,
    new_magic_token,
    now_utc,
)
from prizmatrack.config import settings
from prizmatrack.db import get_db
from prizmatrack.errors import Expired, Unauthenticated
from prizmatrack.models.auth_magic_link import AuthMagicLink
from prizmatrack.models.user import User
from prizmatrack.ratelimit import rate_limit
from prizmatrack.schemas.auth import AccessTokenOut, RedeemIn, RequestLinkIn, RequestLinkOut
from prizmatrack.schemas.common import Envelope, ok

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/request-link", response_model=Envelope[RequestLinkOut])
def request_link(
    payload: RequestLinkIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:request_link",
            limit_per_window=settings.rate_limit_auth_request_link_per_min,
            window_seconds=60,
        )
    ),
) -> dict:
    email = payload.email.lower().strip()

    user = db.scalar(select(User).where(User.email == email))
    if user is None:
        user = User(email=email, account_ref=new_account_ref())
        db.add(user)
        db.flush()

    token = new_magic_token()

    db.add(
        AuthMagicLink(
            token_hash=hash_token(token),
            user_id=user.id,
            expires_at=magic_link_expiry(),
            used_at=None,
        )
    )
    db.commit()

    # in prod the token only travels by mail
    mail.send_magic_link(email, f"{settings.base_url.rstrip('/')}/auth/redeem?token={token}")

    if settings.app_env == "prod":
        return ok(RequestLinkOut(sent=True))

    return ok(RequestLinkOut(sent=True, token=token))

@router.post("/redeem", response_model=Envelope[AccessTokenOut])
def redeem(
    payload: RedeemIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:redeem",
            limit_per_window=settings.rate_limit_auth_redeem_per_min,
            window_seconds=60,
        )
    ),
) -> dict:
    token_hash = hash_token(payload.token.strip())
    now = now_utc()

    # atomic single-use + expiry gate
    stmt = (
        update(AuthMagicLink)
        .where(AuthMagicLink.token_hash == token_hash)
        .where(AuthMagicLink.used_at.is_(None))
        .where(AuthMagicLink.expires_at > now)
        .values(used_at=now)
        .returning(AuthMagicLink.user_id)
        .execution_options(synchronize_session=False)
    )

    user_id = db.scalar(stmt)
    if user_id is None:
        db.rollback()
        row = db.get(AuthMagicLink, token_hash)
        if row is None:
            raise Unauthenticated("invalid token")
        if row.used_at is not None:
            raise Expired("token already used")
        if is_expired(row.expires_at, now):
            raise Expired("token expired")
        raise Unauthenticated("invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("invalid token")

    db.commit()
    return ok(AccessTokenOut(access_token=issue_access_token(user.account_ref)))
