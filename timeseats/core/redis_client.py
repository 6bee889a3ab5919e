"""
TimesEats — shared Redis client (idempotency cache, health check)
"""
import redis.asyncio as aioredis
from timeseats.core.config import get_settings

settings = get_settings()

_redis_client: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Return the process-wide client, connecting lazily on first use."""
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
        )
    return _redis_client


def set_redis(client) -> None:
    """Swap in a preconfigured client (tests, alternative deployments)."""
    global _redis_client
    _redis_client = client


async def close_redis():
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
    _redis_client = None
