from __future__ import annotations

import json
from typing import Optional

from listbridge.main.exceptions import ParseFailure
from listbridge.parsers.base import ParsedRecord, Parser, decode_payload


class JSONParser(Parser):
    """Parses payloads holding one JSON object each."""

    def parse(self, raw: bytes | str) -> Optional[ParsedRecord]:
        try:
            record = json.loads(decode_payload(raw))
        except json.JSONDecodeError as exc:
            raise ParseFailure(raw, f"invalid JSON: {exc.msg}") from exc

        if not isinstance(record, dict):
            raise ParseFailure(raw, f"expected a JSON object, got {type(record).__name__}")

        timestamp = self._pop_time(raw, record)
        return ParsedRecord(timestamp, record)
