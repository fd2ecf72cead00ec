# Fixed-window, per-IP rate limiting backed by Redis counters.
# Keys: rl:v1:ip:{ip}:{scope}. When Redis is disabled or erroring, requests are let through.
import os
import logging
from typing import Callable, Literal, Optional

import redis
from fastapi import Request, HTTPException, status

from .redis_client import get_redis

logger = logging.getLogger("rentwise.rate_limit")

# login/signup protect the identity endpoints; write covers listing and review mutations
Scope = Literal["login", "signup", "write"]

_DEFAULT_LIMITS = {"login": 10, "signup": 5, "write": 30}


def _env_int(name: str, default: int) -> int:
    val: Optional[str] = os.getenv(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _window_seconds() -> int:
    return _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)


def _limit_for_scope(scope: Scope) -> int:
    # RATE_LIMIT_LOGIN_PER_WINDOW, RATE_LIMIT_SIGNUP_PER_WINDOW, RATE_LIMIT_WRITE_PER_WINDOW
    return _env_int(f"RATE_LIMIT_{scope.upper()}_PER_WINDOW", _DEFAULT_LIMITS[scope])


def _client_ip(request: Request) -> str:
    # Remote address only; X-Forwarded-For is not trusted here
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    Build a FastAPI dependency enforcing the per-IP limit for `scope`.

    The first hit in a window sets the key's TTL; once the counter exceeds the
    scope's limit the request fails with 429 and a Retry-After header.
    """
    window = _window_seconds()
    limit = _limit_for_scope(scope)

    def _dependency(request: Request) -> None:
        r = get_redis()
        if r is None:
            return

        ip = _client_ip(request)
        key = f"rl:v1:ip:{ip}:{scope}"
        try:
            current = r.incr(key, amount=1)
            if current == 1:
                r.expire(key, window)
            if current <= limit:
                return
            ttl = r.ttl(key)
        except redis.RedisError as exc:
            logger.warning("Rate limit fail-open (scope=%s, ip=%s): %s", scope, ip, exc)
            return

        retry_after = ttl if isinstance(ttl, int) and ttl > 0 else window
        logger.info("rate_limit.rejected", extra={"scope": scope, "ip": ip, "limit": limit})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limited",
                "scope": scope,
                "limit": limit,
                "window_seconds": window,
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    return _dependency
