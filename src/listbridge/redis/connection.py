"""Redis connection helpers."""

from __future__ import annotations

from typing import Any

from redis.utils import HIREDIS_AVAILABLE

from listbridge.main.config import RedisDriver, RedisEndpoint
from listbridge.main.exceptions import ConfigurationError


def build_redis_kwargs(
    endpoint: RedisEndpoint,
    *,
    decode_responses: bool = False,
) -> dict[str, Any]:
    """Build keyword arguments for a redis.asyncio client.

    A unix socket path takes precedence over host and port.

    Raises:
        ConfigurationError: if the hiredis driver is requested but not installed.
    """
    if endpoint.driver == RedisDriver.HIREDIS and not HIREDIS_AVAILABLE:
        raise ConfigurationError(
            "redis_driver is 'hiredis' but the hiredis package is not installed"
        )

    kwargs: dict[str, Any] = {
        "db": endpoint.db,
        "decode_responses": decode_responses,
        "socket_timeout": endpoint.timeout,
        "socket_connect_timeout": endpoint.timeout,
    }

    if endpoint.path:
        kwargs["unix_socket_path"] = endpoint.path
    else:
        kwargs["host"] = endpoint.host
        kwargs["port"] = endpoint.port

    if endpoint.password:
        kwargs["password"] = endpoint.password

    return kwargs
