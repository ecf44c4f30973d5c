"""Capabilities the worker core needs from its collaborators."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from listbridge.main.config import PopCommand


class QueueClient(Protocol):
    """Remote list plus lock flag, as seen by the worker actions.

    Implementations raise RemoteUnavailable for any remote failure.
    An empty list is reported as ``None``, never as an error.
    """

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def length(self, key: str) -> int: ...

    async def pop(self, key: str, command: PopCommand) -> Optional[bytes]: ...

    async def pipelined_pop(
        self, key: str, command: PopCommand, count: int
    ) -> list[Optional[bytes]]: ...

    async def get(self, key: str) -> Any: ...


class EventRouter(Protocol):
    """Downstream pipeline receiving one call per forwarded record."""

    def emit(self, tag: str, timestamp: float, record: dict[str, Any]) -> None: ...
