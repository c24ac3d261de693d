from typing import Optional
import logging
import redis.asyncio as redis

logger = logging.getLogger(__name__)

class RedisClient:
    _instance: Optional[redis.Redis] = None

    _loop_id: Optional[int] = None

    @classmethod
    def get_instance(cls) -> redis.Redis:
        import asyncio
        try:
            current_loop_id = id(asyncio.get_running_loop())
        except RuntimeError:
            current_loop_id = None

        if cls._instance:
            if cls._loop_id != current_loop_id:
                # Loop changed, discard old instance without closing it on a dead loop.
                # Resetting the pool avoids the "Event loop is closed" error on GC.
                old_instance = cls._instance
                cls._instance = None
                cls._loop_id = None
                try:
                    old_instance.connection_pool.reset()
                except Exception as e:
                    logger.debug(f"Ignoring redis pool reset failure: {e}")

        if cls._instance is None:
            from common.core.config import settings
            cls._instance = redis.from_url(settings.REDIS_URL, decode_responses=True)
            cls._loop_id = current_loop_id

        return cls._instance

    @classmethod
    async def close(cls):
        if cls._instance:
            await cls._instance.aclose()  # Use aclose() for redis-py 5.0+
            cls._instance = None
