import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from listbridge.main.config import TRACE, get_loglevel
from listbridge.main.log_context import get_worker_context


JSON_LOGS_ENABLED = os.getenv("JSON_LOGS", "true").lower() in {"1", "true", "yes", "on"}

logging.addLevelName(TRACE, "TRACE")


class ContextJSONFormatter(logging.Formatter):
    """Serialize log records with worker context into JSON."""

    RESERVED_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }

    def format(self, record: logging.LogRecord) -> str:
        log: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # queue_key, mode and worker_id of this bridge process
        log.update(get_worker_context())

        # Include extra attributes passed via logger(..., extra={}), e.g. timer
        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith("_"):
                continue
            if value is None:
                continue
            log.setdefault(key, value)

        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log["stack"] = record.stack_info

        return json.dumps(log, default=str)


# Quiet third-party loggers unless we are debugging ourselves
for _logger in ("redis", "asyncio"):
    if get_loglevel() <= logging.DEBUG:
        logging.getLogger(_logger).setLevel(logging.INFO)
    else:
        logging.getLogger(_logger).setLevel(logging.WARNING)


class SimpleLogger(logging.Logger):
    """Logger that writes to stderr only.

    stdout is reserved for the records the CLI emits.
    """

    ERROR = logging.ERROR
    WARN = logging.WARN
    INFO = logging.INFO
    DEBUG = logging.DEBUG
    TRACE = TRACE

    def __init__(self, name="main", level=logging.WARNING, console=True):
        logging.Logger.__init__(self, name, level)

        if console is not True:
            return

        handler: logging.Handler
        if JSON_LOGS_ENABLED:
            handler = logging.StreamHandler(stream=sys.stderr)
            handler.setFormatter(ContextJSONFormatter())
        else:
            handler = RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                markup=False,
                show_path=True,
            )
        handler.setLevel(level)
        self.addHandler(handler)

    def trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)


def get_logger(module_name: str) -> SimpleLogger:
    # If we don't add a handler manually one will be created for us
    return SimpleLogger(name=module_name, level=get_loglevel())
