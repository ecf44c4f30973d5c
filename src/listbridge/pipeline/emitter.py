"""Downstream sinks for forwarded records."""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO


class JsonLinesEmitter:
    """Writes one JSON document per emitted record.

    Each line has the shape ``{"tag": ..., "time": ..., "record": {...}}``.
    Values that are not JSON serializable (bytes, datetimes) are written
    through ``str``.
    """

    def __init__(self, stream: TextIO | None = None, flush: bool = True) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._flush = flush

    def emit(self, tag: str, timestamp: float, record: dict[str, Any]) -> None:
        line = json.dumps({"tag": tag, "time": timestamp, "record": record}, default=str)
        self._stream.write(line + "\n")
        if self._flush:
            self._stream.flush()
