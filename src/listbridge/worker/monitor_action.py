"""The monitor variant's per-tick procedure: report queue depth."""

from __future__ import annotations

from listbridge.main.config import PollerConfig
from listbridge.main.logging import get_logger
from listbridge.worker.backoff import BackoffState, Clock, default_clock, is_sleeping
from listbridge.worker.protocols import EventRouter, QueueClient

logger = get_logger(__name__)

MONITOR_MESSAGE = "redis queue monitor"


class QueueMonitorAction:
    """Emits one depth record per tick.

    Every instance reports, whoever holds the lock, so the lock flag is not
    consulted here.
    """

    def __init__(
        self,
        config: PollerConfig,
        client: QueueClient,
        router: EventRouter,
        backoff: BackoffState,
        clock: Clock = default_clock,
    ) -> None:
        self._config = config
        self._client = client
        self._router = router
        self._backoff = backoff
        self._clock = clock

    async def __call__(self) -> None:
        now = self._clock()

        if is_sleeping(self._backoff, now):
            logger.trace("Redis worker is sleeping")
            return

        try:
            list_size = await self._client.length(self._config.key)

            event = {
                "timestamp": now,
                "message": MONITOR_MESSAGE,
                "hostname": self._config.endpoint.host,
                "key": self._config.key,
                "size": list_size,
            }

            self._router.emit(self._config.output_tag, now, event)
        except Exception as exc:
            logger.error(
                f"Error monitoring queue: {exc}",
                extra={"queue_key": self._config.key},
                exc_info=True,
            )
            self._backoff.defer(self._config.retry_interval, self._clock())
