"""Publish one envelope to the fan-out channel.

Usage: realtime-publish '{"type": "NEW_GROUP_MESSAGE", "data": {"id": 7}}'
"""
from __future__ import annotations

import argparse
import asyncio
import logging

import redis.asyncio as aioredis

from realtime_bus.application.exceptions import MalformedEnvelopeError
from realtime_bus.application.ports.bus import EventPublisher
from realtime_bus.config import settings
from realtime_bus.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from realtime_bus.infrastructure.ws.protocol import parse_envelope

logger = logging.getLogger(__name__)


async def publish(raw: str, channel: str) -> None:
    envelope = parse_envelope(raw)
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        publisher: EventPublisher = RedisPubSubPublisher(redis)
        await publisher.publish(channel, envelope)
    finally:
        await redis.aclose()
    logger.info("Published %s to %s", envelope.type, channel)


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("envelope", help="JSON object with a string 'type'")
    parser.add_argument("--channel", default=settings.REDIS_PUBSUB_CHANNEL)
    args = parser.parse_args()
    try:
        asyncio.run(publish(args.envelope, args.channel))
    except MalformedEnvelopeError as exc:
        parser.error(exc.detail)


if __name__ == "__main__":
    main()
