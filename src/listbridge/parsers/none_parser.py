from __future__ import annotations

from typing import Optional

from listbridge.parsers.base import ParsedRecord, Parser, decode_payload


class NoneParser(Parser):
    """Wraps the whole payload in a single field, without an event time."""

    def parse(self, raw: bytes | str) -> Optional[ParsedRecord]:
        return ParsedRecord(None, {self.config.message_key: decode_payload(raw)})
