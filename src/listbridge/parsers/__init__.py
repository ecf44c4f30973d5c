"""Record parsers for popped queue payloads.

- JSONParser: one JSON object per payload (default)
- RegexpParser: named groups of a regular expression
- NoneParser: whole payload as a single field
"""

from listbridge.main.config import ParserConfig
from listbridge.main.exceptions import ConfigurationError
from listbridge.parsers.base import ParsedRecord, Parser, parse_time
from listbridge.parsers.json_parser import JSONParser
from listbridge.parsers.none_parser import NoneParser
from listbridge.parsers.regexp_parser import RegexpParser

PARSERS: dict[str, type[Parser]] = {
    "json": JSONParser,
    "regexp": RegexpParser,
    "none": NoneParser,
}


def create_parser(config: ParserConfig) -> Parser:
    """Instantiate the parser named by `config.type`.

    Raises:
        ConfigurationError: for unknown parser types or invalid options.
    """
    parser_cls = PARSERS.get(config.type)
    if parser_cls is None:
        raise ConfigurationError(
            f"unknown parser type {config.type!r}, expected one of: {', '.join(sorted(PARSERS))}"
        )
    return parser_cls(config)


__all__ = [
    "JSONParser",
    "NoneParser",
    "PARSERS",
    "ParsedRecord",
    "Parser",
    "RegexpParser",
    "create_parser",
    "parse_time",
]
