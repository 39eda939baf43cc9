from __future__ import annotations

import hashlib
import logging

import jwt
import redis
from fastapi import HTTPException, Request

from flux.auth.deps import TOKEN_COOKIE
from flux.auth.tokens import decode_access_token
from flux.config import settings
from flux.redis_client import redis_client

logger = logging.getLogger(__name__)

def _hash(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:24]

def _verified_subject(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        token = request.cookies.get(TOKEN_COOKIE) or ""
    if not token:
        return None
    try:
        return str(decode_access_token(token.strip())["sub"])
    except (jwt.PyJWTError, KeyError):
        return None

def _caller_key(request: Request) -> str:
    # per user only once the token checks out; everything else shares the ip bucket
    sub = _verified_subject(request)
    if sub:
        return "u:" + _hash(sub)
    ip = (request.client.host if request.client else "unknown").strip()
    return "ip:" + _hash(ip)

# fixed-window limiter using redis INCR + EXPIRE
def rate_limit(name: str, limit_per_window: int, window_seconds: int):
    def _dep(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        key = f"rl:{name}:{_caller_key(request)}"

        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except redis.RedisError as e:
            # fail-open if redis is down
            logger.warning("rate limiter unavailable for %s: %s", name, e)
            return

        if int(count) > int(limit_per_window):
            logger.info("rate limited %s (%s)", name, key)
            raise HTTPException(status_code=429, detail="rate_limited")

    return _dep
