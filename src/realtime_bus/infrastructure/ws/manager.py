"""In-process registry of server-side WebSocket connections."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

from realtime_bus.infrastructure.bus.serializer import encode_envelope

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Every connected client receives every envelope; clients filter by type."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._connections.add(ws)
        logger.debug("WS connected (total=%d)", len(self._connections))

    def disconnect(self, ws: WebSocket) -> None:
        self._connections.discard(ws)
        logger.debug("WS disconnected (total=%d)", len(self._connections))

    async def broadcast(self, envelope: Any) -> int:
        """Send one envelope to all connections; returns successful deliveries."""
        raw = encode_envelope(envelope)
        delivered = 0
        dead: list[WebSocket] = []
        for ws in tuple(self._connections):
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(ws)
            else:
                delivered += 1
        for ws in dead:
            self.disconnect(ws)
        if dead:
            logger.info("Pruned %d dead WS connections", len(dead))
        return delivered
