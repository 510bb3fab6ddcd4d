"""
Lazy async Redis client shared by the favorite store and the provider index.

get_redis() returns None when REDIS_URL is unset (remembered for the process)
or when the server does not answer (retried on the next call). Callers decide
whether a missing client degrades a read or fails a write.
"""
import logging
from typing import Optional

import redis.asyncio as redis

from registry_backend.core.config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None
_configured: Optional[bool] = None


async def _connect(url: str, timeout: float) -> Optional[redis.Redis]:
    client = redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
    )
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis at {url.split('@')[-1]} did not answer: {e}")
        await client.aclose()
        return None
    return client


async def get_redis() -> Optional[redis.Redis]:
    global _client, _configured

    if _client is not None:
        return _client
    if _configured is False:
        return None

    settings = get_settings()
    if not settings.redis_url:
        logger.warning("REDIS_URL not configured; favorites and provider index are unavailable")
        _configured = False
        return None

    _configured = True
    _client = await _connect(settings.redis_url, settings.redis_timeout_seconds)
    if _client is not None:
        logger.info("Connected to Redis")
    return _client


async def close_redis() -> None:
    """Lifespan and worker shutdown hook."""
    global _client, _configured
    client, _client, _configured = _client, None, None
    if client is not None:
        await client.aclose()
        logger.info("Redis connection closed")


def set_redis_for_testing(client: Optional[redis.Redis]) -> None:
    """Injects a client (fakeredis) or None to simulate an unconfigured store."""
    global _client, _configured
    _client = client
    _configured = client is not None


def reset_redis_for_testing() -> None:
    global _client, _configured
    _client = None
    _configured = None
