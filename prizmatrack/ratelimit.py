from __future__ import annotations

import hashlib
import logging

from fastapi import Request
from redis.exceptions import RedisError

from prizmatrack.config import settings
from prizmatrack.errors import RateLimited
from prizmatrack.redis_client import redis_client

logger = logging.getLogger(__name__)

def _hash(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:24]

# fixed-window limiter using redis INCR + EXPIRE.
# sync dependency: fastapi runs it in the threadpool, off the event loop
def rate_limit(name: str, limit_per_window: int, window_seconds: int):
    def _dep(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        ip = (request.client.host if request.client else "unknown").strip()
        key = f"rl:{name}:{_hash(ip)}"

        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except RedisError:
            # fail-open if redis is down
            logger.warning("rate limiter unavailable, allowing %s", name)
            return

        if int(count) > int(limit_per_window):
            raise RateLimited("rate_limited")

    return _dep
