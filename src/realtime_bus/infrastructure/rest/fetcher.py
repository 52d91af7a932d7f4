from __future__ import annotations

import logging
from typing import Any

import httpx

from realtime_bus.application.exceptions import FetchError
from realtime_bus.config import Settings
from realtime_bus.domain.value_objects.query_keys import QueryKey, key_path

logger = logging.getLogger(__name__)


class HttpQueryFetcher:
    """GETs the path a query key names, relative to the app origin."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @staticmethod
    def build_client(settings: Settings) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=settings.APP_ORIGIN, timeout=settings.HTTP_TIMEOUT)

    async def __call__(self, key: QueryKey) -> Any:
        path = key_path(key)
        resp = await self._client.get(path)
        if resp.is_error:
            logger.warning("GET %s failed with %d", path, resp.status_code)
            raise FetchError(resp.status_code, resp.text or resp.reason_phrase)
        return resp.json()
