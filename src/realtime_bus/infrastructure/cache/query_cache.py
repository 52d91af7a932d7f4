"""Client-side query cache with stale marking.

Invalidation only flags entries; the next ``fetch`` of a stale key goes back
to the REST layer. Reads between the two may see old data.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from realtime_bus.application.ports.fetcher import QueryFetcher
from realtime_bus.domain.value_objects.query_keys import QueryKey, matches

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QueryEntry:
    key: QueryKey
    data: Any = None
    has_data: bool = False
    fetched_at: float | None = None
    invalidated: bool = False
    # bumped on every invalidation so an in-flight fetch can tell it raced one
    generation: int = 0
    in_flight: asyncio.Future[Any] | None = field(default=None, repr=False)


class QueryCache:
    def __init__(self, fetcher: QueryFetcher, *, stale_after: float | None = None) -> None:
        self._fetcher = fetcher
        self._stale_after = stale_after
        self._entries: dict[QueryKey, QueryEntry] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or not entry.has_data or entry.invalidated:
            return True
        if self._stale_after is None or entry.fetched_at is None:
            return False
        return time.monotonic() - entry.fetched_at >= self._stale_after

    def peek(self, key: QueryKey) -> Any:
        """Cached data, possibly stale, without fetching."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def set(self, key: QueryKey, data: Any) -> None:
        entry = self._entries.setdefault(key, QueryEntry(key=key))
        self._store(entry, data)

    async def fetch(self, key: QueryKey) -> Any:
        """Fresh data for ``key``; concurrent callers share one request."""
        entry = self._entries.setdefault(key, QueryEntry(key=key))
        if not self.is_stale(key):
            return entry.data
        if entry.in_flight is None:
            entry.in_flight = asyncio.ensure_future(self._load(entry, entry.generation))
        return await asyncio.shield(entry.in_flight)

    async def _load(self, entry: QueryEntry, generation: int) -> Any:
        try:
            data = await self._fetcher(entry.key)
        finally:
            entry.in_flight = None
        self._store(entry, data)
        if entry.generation != generation:
            entry.invalidated = True
            logger.debug("Query %s was invalidated mid-fetch, keeping it stale", entry.key)
        return data

    @staticmethod
    def _store(entry: QueryEntry, data: Any) -> None:
        entry.data = data
        entry.has_data = True
        entry.fetched_at = time.monotonic()
        entry.invalidated = False

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        """Mark every key starting with ``prefix`` stale; returns the matched keys."""
        matched: list[QueryKey] = []
        for key, entry in self._entries.items():
            if matches(key, prefix):
                entry.invalidated = True
                entry.generation += 1
                matched.append(key)
        logger.debug("Invalidated %d queries under %s", len(matched), prefix)
        return matched

    def remove(self, prefix: QueryKey) -> list[QueryKey]:
        """Drop matching entries. A load in flight still answers its waiters
        but lands in the detached entry, not in the cache."""
        removed = [key for key in self._entries if matches(key, prefix)]
        for key in removed:
            del self._entries[key]
        return removed
