"""Connect a realtime channel and log every envelope until interrupted.

Usage: realtime-tail  (APP_ORIGIN selects the server)
"""
from __future__ import annotations

import asyncio
import logging

from realtime_bus.config import settings
from realtime_bus.infrastructure.ws.channel import RealtimeChannel
from realtime_bus.infrastructure.ws.protocol import AnyEnvelope

logger = logging.getLogger(__name__)


def _log_envelope(envelope: AnyEnvelope) -> None:
    logger.info("%s %s", envelope.type, envelope.to_dict())


async def run_tail(poll_interval: float = 1.0) -> None:
    async with RealtimeChannel.from_settings(settings) as channel:
        channel.subscribe(_log_envelope)
        logger.info("Tailing %s", channel.url)
        # the loop ends on close without reconnect, or once reconnect gives up
        while channel.running:
            await asyncio.sleep(poll_interval)


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run_tail())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
