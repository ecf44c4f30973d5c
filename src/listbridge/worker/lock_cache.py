"""Process-local mirror of the remote lock flag.

The lock itself is set and cleared by an external coordinator. Pollers only
observe it: LockMonitorAction copies the remote value into LocalLockCache
once a second, and the poll action reads the cache so that deciding whether
to poll never costs a round trip.
"""

from __future__ import annotations

from typing import Any

from listbridge.main.logging import get_logger
from listbridge.worker.protocols import QueueClient

logger = get_logger(__name__)

# Seconds between lock flag refreshes
LOCK_MONITOR_INTERVAL = 1.0


class LocalLockCache:
    """In-memory key/value store with a single writer (the lock monitor)."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def put(self, key: str, value: Any) -> None:
        self._values[key] = value


def is_locked(cache: LocalLockCache, lock_key: str) -> bool:
    """Whether the cached lock flag is set.

    Only presence matters: an unset key (None) or an explicit False means
    unlocked, any other value (even an empty string) means locked.
    """
    return lock_value_set(cache.get(lock_key))


def lock_value_set(value: Any) -> bool:
    return value is not None and value is not False


class LockMonitorAction:
    """Copies the remote lock value into the local cache on every tick.

    Remote errors are not handled here. They surface in the scheduler's
    isolation wrapper and the cache keeps whatever it held before.
    """

    def __init__(self, client: QueueClient, cache: LocalLockCache, lock_key: str) -> None:
        self._client = client
        self._cache = cache
        self._lock_key = lock_key

    async def __call__(self) -> None:
        value = await self._client.get(self._lock_key)
        locked = lock_value_set(value)
        if is_locked(self._cache, self._lock_key) != locked:
            logger.info(
                "Queue lock flag changed",
                extra={"lock_key": self._lock_key, "locked": locked},
            )
        self._cache.put(self._lock_key, value)
