"""
Redis client for the public tracking cache.

Only :class:`hawala.services.tracking_service.TrackingCache` talks to it.
Cached views are a convenience: a short socket timeout keeps a slow or
unreachable Redis from stalling tracking lookups, which then read from
the database instead.
"""

import redis.asyncio as aioredis

from hawala.config import settings

tracking_redis = aioredis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    ssl=settings.REDIS_SSL,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
)


async def get_redis() -> aioredis.Redis:
    return tracking_redis
