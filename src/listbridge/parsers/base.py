"""Shared parser types and time handling."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, NamedTuple, Optional

from listbridge.main.config import ParserConfig
from listbridge.main.exceptions import ParseFailure


class ParsedRecord(NamedTuple):
    timestamp: Optional[float]
    record: dict[str, Any]


class Parser(ABC):
    """Turns one raw queue payload into at most one record.

    Implementations return None when the payload yields nothing usable and
    raise ParseFailure when it is malformed.
    """

    def __init__(self, config: ParserConfig) -> None:
        self.config = config

    @abstractmethod
    def parse(self, raw: bytes | str) -> Optional[ParsedRecord]: ...

    def _pop_time(self, raw: bytes | str, record: dict[str, Any]) -> Optional[float]:
        """Extract the event time from `record` according to time_key settings."""
        time_key = self.config.time_key
        if not time_key or time_key not in record:
            return None

        value = record[time_key] if self.config.keep_time_key else record.pop(time_key)
        try:
            return parse_time(value, self.config.time_format)
        except (TypeError, ValueError) as exc:
            raise ParseFailure(raw, f"invalid time value {value!r}: {exc}") from exc


def decode_payload(raw: bytes | str) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseFailure(raw, "payload is not valid UTF-8") from exc


def parse_time(value: Any, time_format: Optional[str] = None) -> Optional[float]:
    """Convert a time field into epoch seconds.

    Numbers are taken as epoch seconds. Strings are parsed with `time_format`
    when given, otherwise as ISO-8601 and finally as a numeric string. Naive
    datetimes are assumed to be UTC. NaN and infinities are rejected.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TypeError("boolean is not a time value")
    if isinstance(value, (int, float)):
        return _finite(float(value))
    if not isinstance(value, str):
        raise TypeError(f"unsupported time type {type(value).__name__}")

    if time_format:
        parsed = datetime.strptime(value, time_format)
    else:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _finite(float(value))

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _finite(seconds: float) -> float:
    if not math.isfinite(seconds):
        raise ValueError(f"time value must be finite, got {seconds!r}")
    return seconds
