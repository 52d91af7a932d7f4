from __future__ import annotations

from typing import Any, Protocol

from realtime_bus.domain.value_objects.query_keys import QueryKey


class QueryFetcher(Protocol):
    """Loads the current value of a query key from the REST layer."""

    async def __call__(self, key: QueryKey) -> Any: ...
