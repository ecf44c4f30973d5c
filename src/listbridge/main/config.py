import logging
import os
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from listbridge.main.exceptions import ConfigurationError

# Below DEBUG; used for the per-tick "sleeping"/"locked" skip lines
TRACE = 5

DEFAULT_LOCK_KEY_FORMAT = "listbridge:{key}:lock"


class PopCommand(str, Enum):
    """Redis command used to take one message off the list."""

    LPOP = "lpop"  # pop from head
    RPOP = "rpop"  # pop from tail


_POP_COMMAND_ALIASES = {"head": "lpop", "tail": "rpop"}


class BridgeMode(str, Enum):
    POLLER = "poller"
    MONITOR = "monitor"


class RedisDriver(str, Enum):
    AUTO = "auto"
    PYTHON = "python"
    HIREDIS = "hiredis"


class Settings(BaseSettings):
    """Raw configuration surface, read from the environment and `.env`.

    Values are only type-checked here. Semantic validation happens when the
    settings are turned into a PollerConfig.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Redis connection
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379
    redis_path: Optional[str] = None  # unix socket, takes precedence over host/port
    redis_password: Optional[str] = None
    redis_db: int = 0
    redis_timeout: float = 5.0
    redis_driver: str = "auto"

    # Redis list
    queue_key: str
    queue_command: str = "lpop"
    batch_size: int = 0  # 0 or 1 = single pop per tick

    # Routing
    tag: Optional[str] = None
    bridge_mode: str = "poller"
    lock_key_format: str = DEFAULT_LOCK_KEY_FORMAT

    # Worker timings (seconds)
    poll_interval: float = 1.0
    sleep_interval: float = 5.0  # after an empty pop
    retry_interval: float = 5.0  # after an error

    # Parser
    parser_type: str = "json"
    parser_time_key: Optional[str] = "time"
    parser_time_format: Optional[str] = None
    parser_keep_time_key: bool = False
    parser_expression: Optional[str] = None
    parser_message_key: str = "message"


class RedisEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 6379
    path: Optional[str] = None
    password: Optional[str] = None
    db: int = 0
    timeout: float = 5.0
    driver: RedisDriver = RedisDriver.AUTO

    @field_validator("host")
    @classmethod
    def host_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("configuration key missing: host")
        return value.strip()

    @field_validator("port")
    @classmethod
    def port_in_range(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {value}")
        return value

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be greater than 0")
        return value


class ParserConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "json"
    time_key: Optional[str] = "time"
    time_format: Optional[str] = None
    keep_time_key: bool = False
    expression: Optional[str] = None
    message_key: str = "message"


class PollerConfig(BaseModel):
    """Immutable configuration shared by every worker action."""

    model_config = ConfigDict(frozen=True)

    key: str
    endpoint: RedisEndpoint = Field(default_factory=RedisEndpoint)
    command: PopCommand = PopCommand.LPOP
    batch_size: int = 0
    tag: Optional[str] = None
    mode: BridgeMode = BridgeMode.POLLER
    lock_key_format: str = DEFAULT_LOCK_KEY_FORMAT
    poll_interval: float = 1.0
    sleep_interval: float = 5.0
    retry_interval: float = 5.0
    parser: ParserConfig = Field(default_factory=ParserConfig)

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("configuration key missing: key")
        return value

    @field_validator("command", mode="before")
    @classmethod
    def resolve_command_alias(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            normalized = _POP_COMMAND_ALIASES.get(normalized, normalized)
            if normalized not in {c.value for c in PopCommand}:
                raise ValueError("command must be either lpop or rpop")
            return normalized
        return value

    @field_validator("batch_size")
    @classmethod
    def batch_size_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("batch_size must be 0 or greater")
        return value

    @field_validator("poll_interval")
    @classmethod
    def poll_interval_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("poll_interval must be greater than 0")
        return value

    @field_validator("sleep_interval", "retry_interval")
    @classmethod
    def backoff_not_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("sleep_interval and retry_interval must not be negative")
        return value

    @field_validator("lock_key_format")
    @classmethod
    def lock_key_format_has_placeholder(cls, value: str) -> str:
        if "{key}" not in value:
            raise ValueError("lock_key_format must contain the {key} placeholder")
        # {key} must be the only field the format needs
        try:
            value.format(key="queue")
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(
                f"lock_key_format {value!r} cannot be filled with only {{key}}: {exc!r}"
            ) from exc
        return value

    @model_validator(mode="after")
    def validate_mode_requirements(self):
        if self.mode == BridgeMode.MONITOR and not self.tag:
            raise ValueError("configuration key missing: tag")
        return self

    @property
    def lock_key(self) -> str:
        return self.lock_key_format.format(key=self.key)

    @property
    def output_tag(self) -> str:
        return self.tag or self.key

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollerConfig":
        """Build the validated core configuration.

        Raises:
            ConfigurationError: if any option is missing or invalid.
        """
        try:
            return cls(
                key=settings.queue_key,
                endpoint=RedisEndpoint(
                    host=settings.redis_host,
                    port=settings.redis_port,
                    path=settings.redis_path,
                    password=settings.redis_password,
                    db=settings.redis_db,
                    timeout=settings.redis_timeout,
                    driver=settings.redis_driver,
                ),
                command=settings.queue_command,
                batch_size=settings.batch_size,
                tag=settings.tag,
                mode=settings.bridge_mode,
                lock_key_format=settings.lock_key_format,
                poll_interval=settings.poll_interval,
                sleep_interval=settings.sleep_interval,
                retry_interval=settings.retry_interval,
                parser=ParserConfig(
                    type=settings.parser_type,
                    time_key=settings.parser_time_key,
                    time_format=settings.parser_time_format,
                    keep_time_key=settings.parser_keep_time_key,
                    expression=settings.parser_expression,
                    message_key=settings.parser_message_key,
                ),
            )
        except ValidationError as exc:
            raise ConfigurationError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton, creating it if needed.

    Raises:
        ConfigurationError: if the environment is missing mandatory values.
    """
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as exc:
            raise ConfigurationError(_describe_validation_error(exc)) from exc
    return _settings


def set_settings(settings: Settings) -> None:
    """Override settings (primarily for testing)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to None (for test cleanup)."""
    global _settings
    _settings = None


def get_loglevel():
    loglevel = os.getenv("LOGLEVEL", "INFO")

    match loglevel.upper():
        case "TRACE":
            return TRACE
        case "DEBUG":
            return logging.DEBUG
        case "INFO":
            return logging.INFO
        case "WARNING":
            return logging.WARNING
        case "ERROR":
            return logging.ERROR
        case "CRITICAL":
            return logging.CRITICAL
        case _:
            return logging.INFO
