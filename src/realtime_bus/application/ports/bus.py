from __future__ import annotations

from typing import Any, Protocol


class EventPublisher(Protocol):
    """Where the REST layer drops envelopes after a write."""

    async def publish(self, channel: str, envelope: Any) -> None: ...
