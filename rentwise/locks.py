# Short-lived Redis locks that serialize duplicate submissions of the same form.
# Without Redis the lock is always granted; the database unique constraints remain the backstop.
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator
from uuid import uuid4

import redis

from .redis_client import get_redis

logger = logging.getLogger("rentwise.locks")

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""


def review_lock_key(property_id: int, user_id: int) -> str:
    return f"lock:review:property:{property_id}:user:{user_id}"


@contextmanager
def redis_try_lock(key: str, ttl_ms: int = 5000) -> Iterator[bool]:
    """
    Try to take `key` with SET NX PX and yield whether we got it.

    Yields True when Redis is unavailable, False when another request holds
    the lock. Usage:

        with redis_try_lock(review_lock_key(pid, uid)) as locked:
            if not locked:
                raise HTTPException(429, ...)
            # insert or update the review
    """
    r = get_redis()
    if r is None:
        yield True
        return

    token = uuid4().hex
    try:
        acquired = bool(r.set(key, token, nx=True, px=ttl_ms))
    except redis.RedisError as exc:
        logger.warning("redis_try_lock error (key=%s): %s", key, exc)
        yield True
        return

    try:
        yield acquired
    finally:
        if acquired:
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except redis.RedisError as exc:
                # Left to expire via its TTL
                logger.debug("redis_try_lock release error (key=%s): %s", key, exc)
