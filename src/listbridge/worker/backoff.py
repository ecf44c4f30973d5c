"""Retry-not-before deadline shared by the poll actions."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

Clock = Callable[[], float]

default_clock: Clock = time.time


@dataclass
class BackoffState:
    """A single nullable deadline.

    The deadline is never cleared. Once `now` reaches it the worker is
    awake again, and the next defer() simply overwrites it.
    """

    deadline: Optional[float] = None

    def defer(self, delay: float, now: float) -> float:
        self.deadline = now + delay
        return self.deadline


def is_sleeping(backoff: BackoffState, now: float) -> bool:
    return backoff.deadline is not None and now < backoff.deadline
