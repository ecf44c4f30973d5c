"""Single and batched retrieval of raw messages."""

from __future__ import annotations

from typing import Optional

from listbridge.main.config import PollerConfig
from listbridge.worker.protocols import QueueClient


def is_batched(config: PollerConfig) -> bool:
    return config.batch_size > 1


async def fetch_messages(client: QueueClient, config: PollerConfig) -> list[Optional[bytes]]:
    """Pop up to `batch_size` messages, in request order.

    Batch mode sends every pop in one pipelined request. Each entry may be
    None when the list ran dry; whatever the caller does not process after
    that is already gone from Redis.
    """
    if is_batched(config):
        return await client.pipelined_pop(config.key, config.command, config.batch_size)
    return [await client.pop(config.key, config.command)]
