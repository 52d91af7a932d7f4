"""Redis Pub/Sub: publish side for the REST layer and the fan-out subscriber task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from realtime_bus.application.exceptions import MalformedEnvelopeError
from realtime_bus.infrastructure.bus.serializer import encode_envelope
from realtime_bus.infrastructure.ws.protocol import AnyEnvelope, parse_envelope

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, envelope: Any) -> None:
        await self._redis.publish(channel, encode_envelope(envelope))


OnEnvelopeCallback = Callable[[AnyEnvelope], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and hands envelopes on."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEnvelopeCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Redis Pub/Sub subscriber ended with an error")
            self._task = None
            logger.info("Redis Pub/Sub subscriber stopped")

    async def handle(self, raw: str | bytes) -> None:
        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelopeError as exc:
            logger.warning("Dropping malformed pubsub envelope: %s", exc.detail)
            return
        try:
            await self._callback(envelope)
        except Exception:
            logger.exception("Error processing pubsub envelope %s", envelope.type)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self.handle(message["data"])
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
