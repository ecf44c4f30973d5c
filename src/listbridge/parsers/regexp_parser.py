from __future__ import annotations

import re
from typing import Optional

from listbridge.main.config import ParserConfig
from listbridge.main.exceptions import ConfigurationError
from listbridge.parsers.base import ParsedRecord, Parser, decode_payload


class RegexpParser(Parser):
    """Parses text payloads with a regular expression.

    Named groups become record fields. A payload the expression does not
    match yields no record.
    """

    def __init__(self, config: ParserConfig) -> None:
        super().__init__(config)
        if not config.expression:
            raise ConfigurationError("regexp parser requires parser_expression")
        try:
            self._pattern = re.compile(config.expression)
        except re.error as exc:
            raise ConfigurationError(f"invalid parser_expression: {exc}") from exc
        if not self._pattern.groupindex:
            raise ConfigurationError("parser_expression must contain at least one named group")

    def parse(self, raw: bytes | str) -> Optional[ParsedRecord]:
        match = self._pattern.search(decode_payload(raw))
        if match is None:
            return None

        record = {name: value for name, value in match.groupdict().items() if value is not None}
        timestamp = self._pop_time(raw, record)
        return ParsedRecord(timestamp, record)
