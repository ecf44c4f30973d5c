"""Run a list bridge until SIGINT/SIGTERM.

Configuration is read from the environment and `.env`. Forwarded records are
written to stdout as JSON lines; logs go to stderr.

Usage:
    QUEUE_KEY=events TAG=app.events listbridge-run
    uv run python -m listbridge.cli.run_bridge
"""

import asyncio
import signal
import sys

from listbridge.main.config import PollerConfig, get_settings
from listbridge.main.exceptions import ConfigurationError
from listbridge.main.logging import get_logger
from listbridge.pipeline import JsonLinesEmitter
from listbridge.worker.list_bridge import ListBridge, build_bridge

logger = get_logger(__name__)


async def run(bridge: ListBridge) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, bridge.stop)
        except NotImplementedError:  # pragma: no cover - not available on Windows
            pass

    await bridge.run_forever()


def main() -> int:
    try:
        config = PollerConfig.from_settings(get_settings())
        bridge = build_bridge(config, JsonLinesEmitter(sys.stdout))
    except ConfigurationError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2

    asyncio.run(run(bridge))
    return 0


if __name__ == "__main__":
    sys.exit(main())
