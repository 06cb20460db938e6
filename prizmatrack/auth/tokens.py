import hashlib
import hmac
import secrets
import jwt
from datetime import datetime, timedelta, timezone
from prizmatrack.config import settings

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: datetime) -> datetime:
    # some drivers (sqlite) hand back naive datetimes for timestamptz columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    return (now or now_utc()) >= as_utc(expires_at)

def new_account_ref() -> str:
    return f"acct_{secrets.token_hex(12)}"

def new_magic_token() -> str:
    return secrets.token_urlsafe(32)

def new_invite_token() -> str:
    return secrets.token_urlsafe(32)

def hash_token(token: str) -> str:
    msg = token.encode("utf-8")
    key = settings.magic_link_pepper.encode("utf-8")
    digest = hmac.new(key, msg, hashlib.sha256).hexdigest()
    return digest

def magic_link_expiry() -> datetime:
    return now_utc() + timedelta(minutes=settings.magic_link_expires_minutes)

def invite_expiry() -> datetime:
    return now_utc() + timedelta(days=settings.org_invite_expires_days)

def issue_access_token(account_ref: str) -> str:
    iat = now_utc()
    exp = iat + timedelta(minutes=settings.jwt_expires_minutes)
    payload = {
        "sub": account_ref,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
