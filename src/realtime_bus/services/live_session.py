"""Application-root owner of the realtime channel and the query cache."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from realtime_bus.application.dto.viewer import Viewer
from realtime_bus.config import Settings
from realtime_bus.infrastructure.cache.query_cache import QueryCache
from realtime_bus.infrastructure.rest.fetcher import HttpQueryFetcher
from realtime_bus.infrastructure.ws.channel import RealtimeChannel
from realtime_bus.infrastructure.ws.registry import Handler, Unsubscribe
from realtime_bus.services.invalidation import handlers_for
from realtime_bus.services.notifications import Notify

logger = logging.getLogger(__name__)


class FeatureScope:
    """Handlers mounted together and unsubscribed together, exactly once."""

    def __init__(self, session: LiveSession, unsubscribes: list[Unsubscribe]) -> None:
        self._session = session
        self._unsubscribes = unsubscribes
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes.clear()
        self._session._forget(self)

    def __enter__(self) -> FeatureScope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class LiveSession:
    def __init__(
        self,
        channel: RealtimeChannel,
        cache: QueryCache,
        *,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.channel = channel
        self.cache = cache
        self._http = http
        self._scopes: set[FeatureScope] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> LiveSession:
        http = HttpQueryFetcher.build_client(settings)
        cache = QueryCache(HttpQueryFetcher(http), stale_after=settings.QUERY_STALE_SECONDS)
        return cls(RealtimeChannel.from_settings(settings), cache, http=http)

    @property
    def scopes(self) -> int:
        return len(self._scopes)

    def mount(self, *handlers: Handler) -> FeatureScope:
        scope = FeatureScope(self, [self.channel.subscribe(h) for h in handlers])
        self._scopes.add(scope)
        return scope

    def mount_for(self, viewer: Viewer, notify: Notify | None = None) -> FeatureScope:
        return self.mount(*handlers_for(viewer, self.cache, notify))

    def _forget(self, scope: FeatureScope) -> None:
        self._scopes.discard(scope)

    async def send(self, envelope: Any) -> None:
        await self.channel.send(envelope)

    async def start(self) -> None:
        await self.channel.connect()

    async def close(self) -> None:
        for scope in tuple(self._scopes):
            scope.close()
        await self.channel.disconnect()
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        logger.info("Live session closed")

    async def __aenter__(self) -> LiveSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
