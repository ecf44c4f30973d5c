"""Error taxonomy for the bridge.

Only ConfigurationError is allowed to abort the process. Everything else is
absorbed by the worker actions or the scheduler and turned into log lines
and backoff deadlines.
"""


class ConfigurationError(Exception):
    """Raised when a mandatory option is missing or invalid at startup."""


class RemoteUnavailable(Exception):
    """Raised when a Redis command or connection fails."""

    def __init__(self, operation: str, key: str, cause: Exception):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(f"Redis {operation} failed for key {key!r}: {cause}")


class ParseFailure(Exception):
    """Raised when a popped payload cannot be turned into a record."""

    def __init__(self, raw: object, reason: str):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Failed to parse message ({reason}): {raw!r}")
