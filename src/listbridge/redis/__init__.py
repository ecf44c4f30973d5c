"""Redis connection utilities and the queue client adapter."""

from listbridge.redis.client import RedisQueueClient
from listbridge.redis.connection import build_redis_kwargs

__all__ = ["RedisQueueClient", "build_redis_kwargs"]
