"""Shared rate limiter instance.

Uses Redis-backed storage when ``REDIS_URL`` is configured and reachable so
counters are shared across API instances.  Falls back to in-memory storage
(development / test environments).
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

LOGIN_LIMIT = "10/minute"
SIGNUP_LIMIT = "5/minute"


def _create_limiter() -> Limiter:
    from zenledger.config import settings

    if not settings.REDIS_URL:
        return Limiter(key_func=get_remote_address, default_limits=["100/minute"])

    try:
        client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        client.ping()
        client.close()
    except sync_redis.RedisError:
        logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=["100/minute"])

    logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
    return Limiter(
        key_func=get_remote_address,
        default_limits=["100/minute"],
        storage_uri=settings.REDIS_URL,
    )


limiter = _create_limiter()
