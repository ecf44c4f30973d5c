"""Redis-backed queue client used by the bridge workers."""

from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from listbridge.main.config import PopCommand, RedisEndpoint
from listbridge.main.exceptions import RemoteUnavailable
from listbridge.main.logging import get_logger
from listbridge.redis.connection import build_redis_kwargs

logger = get_logger(__name__)


class RedisQueueClient:
    """Pops messages from a Redis list and reads the shared lock key.

    One connection is reused sequentially by every worker action. Redis
    errors are re-raised as RemoteUnavailable so callers never need to know
    about redis-py exception types.

    Args:
        endpoint: Connection details.
        redis_client: Optional pre-built client (tests, shared pools).
    """

    def __init__(
        self,
        endpoint: RedisEndpoint,
        redis_client: aioredis.Redis | None = None,
    ) -> None:
        self._endpoint = endpoint
        # Built eagerly so driver problems surface as ConfigurationError at startup
        self._redis_kwargs = build_redis_kwargs(endpoint)
        self._redis: aioredis.Redis | None = redis_client

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("RedisQueueClient is not open")
        return self._redis

    async def open(self) -> None:
        if self._redis is not None:
            return
        self._redis = aioredis.Redis(**self._redis_kwargs)
        logger.debug(
            "Redis client created",
            extra={
                "redis_host": self._endpoint.host,
                "redis_port": self._endpoint.port,
                "redis_path": self._endpoint.path,
                "redis_db": self._endpoint.db,
            },
        )

    async def close(self) -> None:
        """Close the Redis client if it exists."""
        if self._redis is None:
            return
        try:
            await self._redis.aclose()
            logger.debug("Redis client closed")
        except RedisError as exc:
            logger.warning(f"Error closing Redis client: {exc}")
        finally:
            self._redis = None

    async def length(self, key: str) -> int:
        try:
            return int(await self.redis.llen(key))
        except RedisError as exc:
            raise RemoteUnavailable("LLEN", key, exc) from exc

    async def pop(self, key: str, command: PopCommand) -> Optional[bytes]:
        try:
            if command == PopCommand.RPOP:
                return await self.redis.rpop(key)
            return await self.redis.lpop(key)
        except RedisError as exc:
            raise RemoteUnavailable(command.value.upper(), key, exc) from exc

    async def pipelined_pop(
        self, key: str, command: PopCommand, count: int
    ) -> list[Optional[bytes]]:
        """Issue `count` pops in one round trip.

        Each pop may independently come back empty. Results are returned in
        request order.
        """
        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for _ in range(count):
                    if command == PopCommand.RPOP:
                        pipe.rpop(key)
                    else:
                        pipe.lpop(key)
                return list(await pipe.execute())
        except RedisError as exc:
            raise RemoteUnavailable(f"pipelined {command.value.upper()}", key, exc) from exc

    async def get(self, key: str) -> Any:
        try:
            return await self.redis.get(key)
        except RedisError as exc:
            raise RemoteUnavailable("GET", key, exc) from exc
