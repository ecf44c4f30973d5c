"""The poller variant's per-tick procedure."""

from __future__ import annotations

from listbridge.main.config import PollerConfig
from listbridge.main.exceptions import ParseFailure
from listbridge.main.logging import get_logger
from listbridge.parsers import Parser
from listbridge.worker.backoff import BackoffState, Clock, default_clock, is_sleeping
from listbridge.worker.fetch import fetch_messages
from listbridge.worker.lock_cache import LocalLockCache, is_locked
from listbridge.worker.protocols import EventRouter, QueueClient

logger = get_logger(__name__)


class PollAction:
    """Pops messages, parses them and forwards them downstream.

    Given that the timer is lightweight, a sleeping or locked worker simply
    returns instead of actually sleeping. An empty pop backs off for
    sleep_interval and drops the rest of the batch. Any other error backs off
    for retry_interval. Parse failures only skip the offending message.
    """

    def __init__(
        self,
        config: PollerConfig,
        client: QueueClient,
        parser: Parser,
        router: EventRouter,
        lock_cache: LocalLockCache,
        backoff: BackoffState,
        clock: Clock = default_clock,
    ) -> None:
        self._config = config
        self._client = client
        self._parser = parser
        self._router = router
        self._lock_cache = lock_cache
        self._backoff = backoff
        self._clock = clock

    async def __call__(self) -> None:
        if is_sleeping(self._backoff, self._clock()):
            logger.trace("Redis worker is sleeping")
            return

        if is_locked(self._lock_cache, self._config.lock_key):
            logger.trace("Redis queue is locked")
            return

        try:
            messages = await fetch_messages(self._client, self._config)

            for message in messages:
                if message is None:
                    logger.debug("Redis queue is empty")
                    self._backoff.defer(self._config.sleep_interval, self._clock())
                    break

                self._forward(message)
        except Exception as exc:
            logger.error(
                f"Error fetching record: {exc}",
                extra={"queue_key": self._config.key},
                exc_info=True,
            )
            self._backoff.defer(self._config.retry_interval, self._clock())

    def _forward(self, message: bytes) -> None:
        try:
            parsed = self._parser.parse(message)
        except ParseFailure as exc:
            logger.warning(
                f"Failed to parse message: {message!r}",
                extra={"reason": exc.reason},
            )
            return

        if parsed is None or parsed.record is None:
            logger.warning(f"Failed to parse message: {message!r}")
            return

        self._router.emit(
            self._config.output_tag,
            parsed.timestamp or self._clock(),
            parsed.record,
        )
