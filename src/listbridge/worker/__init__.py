"""Poll/lock/backoff coordination core.

This package provides:
- Scheduler / isolate: periodic timers on one asyncio loop
- BackoffState: retry-not-before deadline
- LocalLockCache / LockMonitorAction: local mirror of the remote lock flag
- PollAction / QueueMonitorAction: the two pluggable per-tick procedures
- ListBridge: wires the above for one process
"""

from listbridge.worker.backoff import BackoffState, is_sleeping
from listbridge.worker.fetch import fetch_messages, is_batched
from listbridge.worker.list_bridge import ListBridge, build_bridge
from listbridge.worker.lock_cache import (
    LOCK_MONITOR_INTERVAL,
    LocalLockCache,
    LockMonitorAction,
    is_locked,
)
from listbridge.worker.monitor_action import QueueMonitorAction
from listbridge.worker.poll_action import PollAction
from listbridge.worker.scheduler import Scheduler, isolate

__all__ = [
    "BackoffState",
    "LOCK_MONITOR_INTERVAL",
    "ListBridge",
    "LocalLockCache",
    "LockMonitorAction",
    "PollAction",
    "QueueMonitorAction",
    "Scheduler",
    "build_bridge",
    "fetch_messages",
    "is_batched",
    "is_locked",
    "is_sleeping",
    "isolate",
]
