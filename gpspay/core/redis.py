"""
Redis configuration for draft storage
"""
import redis.asyncio as redis
from ..config import settings
from ..logging_config import get_logger

logger = get_logger(__name__)


class RedisManager:
    def __init__(self, url: str = None):
        self.url = url if url is not None else settings.REDIS_URL
        self.redis_client = None
        self.is_available = False

    async def connect(self):
        """Initialize Redis connection"""
        if not self.url:
            logger.info("redis_not_configured")
            return

        try:
            self.redis_client = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True
            )

            # Test connection
            await self.redis_client.ping()
            self.is_available = True
            logger.info("redis_connected")

        except Exception as e:
            logger.warning("redis_connect_failed", error=str(e),
                           detail="Falling back to in-memory draft storage")
            self.is_available = False
            self.redis_client = None

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            self.is_available = False
            logger.info("redis_closed")

    async def get(self, key: str):
        return await self.redis_client.get(key)

    async def set(self, key: str, value: str):
        await self.redis_client.set(key, value)

    async def delete(self, key: str):
        await self.redis_client.delete(key)

    async def rpush(self, key: str, value: str):
        await self.redis_client.rpush(key, value)

    async def lrange(self, key: str):
        return await self.redis_client.lrange(key, 0, -1)

    async def lrem(self, key: str, value: str) -> int:
        return await self.redis_client.lrem(key, 1, value)


# Global Redis manager instance
redis_manager = RedisManager()
