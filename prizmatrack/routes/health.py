import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from prizmatrack.db import db_ping
from prizmatrack.redis_client import redis_ping

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# liveness and readiness stay outside the {data, error} envelope for load balancers
@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

@router.get("/ready")
def ready() -> JSONResponse:
    checks: dict[str, bool] = {}

    for name, check in (("db", db_ping), ("redis", redis_ping)):
        try:
            checks[name] = bool(check())
        except Exception:
            # failure detail goes to the log, never to the caller
            logger.exception("readiness check %s failed", name)
            checks[name] = False

    is_ready = all(checks.values())
    if not is_ready:
        logger.warning("not ready: %s", ", ".join(n for n, passed in checks.items() if not passed))

    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={"status": "ok" if is_ready else "unready", "checks": checks},
    )
