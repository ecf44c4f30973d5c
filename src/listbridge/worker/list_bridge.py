"""List Bridge Service - drains a Redis list into the event pipeline.

Several bridge processes may point at the same list. An external coordinator
pauses all of them by setting the list's lock key; each process mirrors that
flag locally once a second and skips polling while it is set.

Two modes share the same timer plumbing:
- poller: pop, parse and forward messages, honouring the lock flag
- monitor: emit the list length on every tick
"""

from __future__ import annotations

import socket
from typing import Optional

from listbridge.main.config import BridgeMode, PollerConfig
from listbridge.main.log_context import bind_worker_context
from listbridge.main.logging import get_logger
from listbridge.parsers import Parser, create_parser
from listbridge.redis.client import RedisQueueClient
from listbridge.worker.backoff import BackoffState, Clock, default_clock
from listbridge.worker.lock_cache import (
    LOCK_MONITOR_INTERVAL,
    LocalLockCache,
    LockMonitorAction,
)
from listbridge.worker.monitor_action import QueueMonitorAction
from listbridge.worker.poll_action import PollAction
from listbridge.worker.protocols import EventRouter, QueueClient
from listbridge.worker.scheduler import Scheduler

logger = get_logger(__name__)


class ListBridge:
    """Owns the queue connection and the timers of one bridge process.

    Note: backoff state and the lock cache are created fresh on every start
    and are never persisted.
    """

    def __init__(
        self,
        config: PollerConfig,
        client: QueueClient,
        router: EventRouter,
        parser: Optional[Parser] = None,
        clock: Clock = default_clock,
    ) -> None:
        self.config = config
        self._client = client
        self._router = router
        self._clock = clock
        # Resolve the parser eagerly so a bad parser config fails at startup
        if parser is None and config.mode == BridgeMode.POLLER:
            parser = create_parser(config.parser)
        self._parser = parser
        self._scheduler: Optional[Scheduler] = None
        self._stop_requested = False
        self.backoff: Optional[BackoffState] = None
        self.lock_cache: Optional[LocalLockCache] = None
        # Cache worker_id at init (gethostname is sync, may trigger DNS)
        self._worker_id = socket.gethostname()

    @property
    def scheduler(self) -> Optional[Scheduler]:
        return self._scheduler

    async def start(self) -> Scheduler:
        """Open the connection and register the timers for the configured mode."""
        bind_worker_context(
            queue_key=self.config.key,
            mode=self.config.mode.value,
            worker_id=self._worker_id,
        )
        logger.info(
            "Starting list bridge",
            extra={
                "poll_interval": self.config.poll_interval,
                "batch_size": self.config.batch_size,
                "command": self.config.command.value,
            },
        )

        await self._client.open()

        self.backoff = BackoffState()
        self.lock_cache = LocalLockCache()
        self._scheduler = Scheduler()

        if self.config.mode == BridgeMode.MONITOR:
            self._start_queue_monitor()
        else:
            self._start_poller()
            self._start_lock_monitor()

        # A stop() that arrived before the scheduler existed still applies
        if self._stop_requested:
            self._scheduler.stop()

        return self._scheduler

    def _start_poller(self) -> None:
        action = PollAction(
            config=self.config,
            client=self._client,
            parser=self._parser,
            router=self._router,
            lock_cache=self.lock_cache,
            backoff=self.backoff,
            clock=self._clock,
        )
        self._scheduler.schedule("poller", self.config.poll_interval, action)

    def _start_lock_monitor(self) -> None:
        action = LockMonitorAction(self._client, self.lock_cache, self.config.lock_key)
        self._scheduler.schedule("lock_monitor", LOCK_MONITOR_INTERVAL, action)

    def _start_queue_monitor(self) -> None:
        action = QueueMonitorAction(
            config=self.config,
            client=self._client,
            router=self._router,
            backoff=self.backoff,
            clock=self._clock,
        )
        self._scheduler.schedule("monitor", self.config.poll_interval, action)

    async def run_forever(self) -> None:
        """Run until stop() is called, then release the connection."""
        try:
            scheduler = await self.start()
            await scheduler.run()
        finally:
            await self._client.close()
            logger.info("List bridge stopped")

    def stop(self) -> None:
        """Stop the timers gracefully; in-flight ticks finish first.

        Safe to call before start(): the bridge then stops as soon as it
        has started.
        """
        logger.info("Stopping list bridge")
        self._stop_requested = True
        if self._scheduler is not None:
            self._scheduler.stop()


def build_bridge(config: PollerConfig, router: EventRouter) -> ListBridge:
    """Wire a bridge to a real Redis connection."""
    return ListBridge(config, RedisQueueClient(config.endpoint), router)
