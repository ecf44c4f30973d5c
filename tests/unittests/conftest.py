from typing import Any, Optional

import pytest

from listbridge.main.config import PollerConfig, PopCommand, Settings


class FakeQueueClient:
    """In-memory stand-in for RedisQueueClient that records every remote call.

    `items` is consumed from the front; a None entry behaves like an empty pop.
    """

    def __init__(self, items=None, lock_value=None, list_length: int = 0):
        self.items: list[Optional[bytes]] = list(items or [])
        self.lock_value = lock_value
        self.list_length = list_length
        self.calls: list[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.opened = False
        self.closed = False

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def _take(self) -> Optional[bytes]:
        return self.items.pop(0) if self.items else None

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def length(self, key: str) -> int:
        self._record("length", key)
        return self.list_length

    async def pop(self, key: str, command: PopCommand) -> Optional[bytes]:
        self._record("pop", key, command)
        return self._take()

    async def pipelined_pop(self, key: str, command: PopCommand, count: int):
        self._record("pipelined_pop", key, command, count)
        return [self._take() for _ in range(count)]

    async def get(self, key: str) -> Any:
        self._record("get", key)
        return self.lock_value


class FakeRouter:
    def __init__(self):
        self.events: list[tuple[str, float, dict]] = []

    def emit(self, tag: str, timestamp: float, record: dict) -> None:
        self.events.append((tag, timestamp, record))


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def test_settings() -> Settings:
    """Explicit settings that do not depend on `.env` or the environment."""
    return Settings(
        redis_host="localhost",
        redis_port=6379,
        queue_key="q1",
        tag="app.q1",
        poll_interval=1.0,
        sleep_interval=5.0,
        retry_interval=7.0,
    )


@pytest.fixture
def poller_config() -> PollerConfig:
    return PollerConfig(
        key="q1",
        tag="app.q1",
        poll_interval=1.0,
        sleep_interval=5.0,
        retry_interval=7.0,
    )


@pytest.fixture
def fake_client() -> FakeQueueClient:
    return FakeQueueClient()


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
