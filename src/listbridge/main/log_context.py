"""Worker identity attached to every log line of a bridge process.

A bridge runs one queue per process, but the timers run as separate asyncio
tasks. The context is bound once in the bridge's own task before the timers
are created, so every timer task inherits a copy of it.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any, Optional

_worker_context: ContextVar[Optional[dict[str, Any]]] = ContextVar(
    "worker_context", default=None
)


def bind_worker_context(queue_key: str, mode: str, worker_id: str) -> dict[str, Any]:
    """Bind the queue, bridge mode and host this process logs for."""
    context = {"queue_key": queue_key, "mode": mode, "worker_id": worker_id}
    _worker_context.set(context)
    return dict(context)


def get_worker_context() -> dict[str, Any]:
    context = _worker_context.get()
    return dict(context) if context else {}


def clear_worker_context() -> None:
    _worker_context.set(None)
