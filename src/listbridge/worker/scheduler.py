"""Single-loop scheduler for the bridge's periodic actions.

Every timer runs as its own asyncio task on the same event loop, so timers
never block one another between awaits and no state needs locking. A timer
fires on a fixed grid measured from its own start. A slow tick delays the
next tick of that timer only, and missed ticks collapse into one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from listbridge.main.exceptions import ConfigurationError
from listbridge.main.logging import get_logger

logger = get_logger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


def isolate(name: str, callback: TimerCallback) -> TimerCallback:
    """Wrap `callback` so any exception it raises is logged and swallowed.

    Cancellation is not an Exception and still propagates.
    """

    async def isolated() -> None:
        try:
            await callback()
        except Exception as exc:
            logger.error(
                f"Unexpected error in timer {name}: {exc}",
                extra={"timer": name},
                exc_info=True,
            )

    isolated.__name__ = f"isolated_{name}"
    return isolated


@dataclass(frozen=True)
class Timer:
    name: str
    interval: float
    callback: TimerCallback


class Scheduler:
    """Runs registered timers until stop() is called.

    Example:
        scheduler = Scheduler()
        scheduler.schedule("poller", 1.0, poll_action)
        scheduler.schedule("lock_monitor", 1.0, lock_monitor)
        await scheduler.run()   # returns after scheduler.stop()
    """

    def __init__(self) -> None:
        self._timers: list[Timer] = []
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def timers(self) -> list[Timer]:
        return list(self._timers)

    @property
    def running(self) -> bool:
        return self._running

    def schedule(self, name: str, interval: float, callback: TimerCallback) -> Timer:
        """Register a repeating timer.

        Raises:
            ConfigurationError: if `interval` is not greater than 0.
            RuntimeError: if the scheduler is already running.
        """
        if interval <= 0:
            raise ConfigurationError(f"interval for timer {name!r} must be greater than 0")
        if self._running:
            raise RuntimeError("cannot schedule timers on a running scheduler")

        timer = Timer(name=name, interval=interval, callback=isolate(name, callback))
        self._timers.append(timer)
        return timer

    async def run(self) -> None:
        """Run every timer until stop() is called.

        In-flight ticks are allowed to finish before this returns.
        """
        if self._running:
            raise RuntimeError("scheduler is already running")
        if self._stop_event.is_set():
            return

        self._running = True
        logger.debug(
            "Scheduler started",
            extra={"timers": [t.name for t in self._timers]},
        )
        try:
            tasks = [
                asyncio.create_task(self._run_timer(timer), name=f"timer:{timer.name}")
                for timer in self._timers
            ]
            if tasks:
                await asyncio.gather(*tasks)
            else:
                await self._stop_event.wait()
        finally:
            self._running = False
            self._timers.clear()
            logger.debug("Scheduler stopped")

    def stop(self) -> None:
        """Ask every timer to stop after its current tick."""
        self._stop_event.set()

    async def _run_timer(self, timer: Timer) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + timer.interval

        while not self._stop_event.is_set():
            delay = next_fire - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass
            else:
                # Overdue tick: still give other timers and stop() a turn
                await asyncio.sleep(0)
                if self._stop_event.is_set():
                    break

            await timer.callback()

            next_fire += timer.interval
            now = loop.time()
            while next_fire + timer.interval <= now:
                next_fire += timer.interval
