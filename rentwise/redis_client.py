# Shared Redis connection for rate limiting and review-submit locks.
# Opt-in via REDIS_ENABLED; every caller must cope with get_redis() returning None.
import logging
import os
from typing import Optional

import redis

_logger = logging.getLogger("rentwise.redis")

_TRUTHY = {"1", "true", "t", "yes", "y", "on"}


def _truthy(val: Optional[str]) -> bool:
    return val is not None and val.strip().lower() in _TRUTHY


def is_redis_enabled() -> bool:
    return _truthy(os.getenv("REDIS_ENABLED", "false"))


# Connected client, and whether a connection attempt was already made in this process
_client: Optional[redis.Redis] = None
_initialized = False


def get_redis() -> Optional[redis.Redis]:
    """
    Return a connected Redis client, or None when Redis is disabled or unreachable.

    The first call connects and pings; a failed attempt is not retried for the
    lifetime of the process, so callers degrade to their no-Redis behavior.
    """
    global _client, _initialized
    if not is_redis_enabled():
        return None
    if _client is not None or _initialized:
        return _client

    url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    _initialized = True
    try:
        client = redis.Redis.from_url(
            url,
            socket_timeout=0.25,
            socket_connect_timeout=0.25,
            retry_on_timeout=False,
            health_check_interval=0,
        )
        client.ping()
    except redis.RedisError as exc:
        _logger.warning("Redis unavailable (fail-open): %s", exc)
        return None

    _client = client
    _logger.info("Connected to Redis at %s", url)
    return _client


def reset_redis() -> None:
    """Forget the cached client so the next get_redis() reconnects."""
    global _client, _initialized
    _client = None
    _initialized = False
