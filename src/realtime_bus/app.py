from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from realtime_bus.api.v1.routers import health, ws
from realtime_bus.config import settings
from realtime_bus.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from realtime_bus.infrastructure.ws.protocol import AnyEnvelope

logger = logging.getLogger(__name__)


async def _on_pubsub_envelope(envelope: AnyEnvelope) -> None:
    """Fan a Redis Pub/Sub envelope out to the local WS connections."""
    delivered = await ws.get_manager().broadcast(envelope)
    logger.debug("Broadcast %s to %d connections", envelope.type, delivered)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if not settings.REDIS_FANOUT_ENABLED:
        logger.info("Redis fan-out disabled, serving local connections only")
        yield
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_pubsub_envelope,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Realtime Update Bus",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(ws.router)

    return app

