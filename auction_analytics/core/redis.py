import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from auction_analytics.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client manager class"""

    def __init__(self):
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis"""
        if self._pool is None:
            self._pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            self._client = Redis(connection_pool=self._pool)

    async def disconnect(self) -> None:
        """Disconnect from Redis"""
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def get_client(self) -> Redis:
        """Get Redis client instance"""
        if self._client is None:
            raise RuntimeError("Redis client is not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """Test Redis connection"""
        if self._client is None:
            return False
        try:
            return await self._client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


redis_client = RedisClient()


async def get_redis() -> Optional[Redis]:
    """
    FastAPI Dependency: Provide Redis client.

    Returns None when Redis is not connected; callers treat the profile
    cache as optional.
    """
    if not redis_client.is_connected:
        return None
    return redis_client.get_client()
