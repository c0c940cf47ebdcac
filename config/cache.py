# config/cache.py
from typing import Optional
from redis.asyncio import Redis, from_url
from config.settings import settings

_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """Shared client; repositories get raw bytes back (decode_responses=False)."""
    global _client
    if _client is None:
        client = from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=False,
            socket_keepalive=True,
            health_check_interval=30,
        )
        # Fail fast on startup if Redis is unreachable.
        await client.ping()
        _client = client
    return _client


def use_redis(client: Optional[Redis]) -> None:
    """Install an already-built client (or None to reset), e.g. a fake in tests."""
    global _client
    _client = client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
