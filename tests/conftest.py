"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer

from realtime_bus.application.dto.viewer import Viewer
from realtime_bus.domain.value_objects.enums import Role
from realtime_bus.domain.value_objects.query_keys import QueryKey
from realtime_bus.infrastructure.ws.channel import build_ws_url


@pytest.fixture
def admin_viewer() -> Viewer:
    return Viewer(user_id=1, role=Role.ADMIN)


@pytest.fixture
def team_leader_viewer() -> Viewer:
    return Viewer(user_id=7, role=Role.TEAM_LEADER)


@pytest.fixture
def employee_viewer() -> Viewer:
    return Viewer(user_id=2, role=Role.EMPLOYEE)


def new_message(
    *,
    sender_id: int = 1,
    receiver_id: int = 2,
    message: str = "hi",
    message_type: str | None = None,
    sender_name: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"senderId": sender_id, "receiverId": receiver_id, "message": message}
    if message_type is not None:
        data["messageType"] = message_type
    if sender_name is not None:
        data["senderName"] = sender_name
    return {"type": "NEW_MESSAGE", "data": data}


@dataclass
class FakeFetcher:
    """In-memory REST layer: returns a versioned payload per key."""

    calls: list[QueryKey] = field(default_factory=list)
    gate: asyncio.Event | None = None
    fail_with: Exception | None = None

    async def __call__(self, key: QueryKey) -> Any:
        self.calls.append(key)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return {"key": list(key), "version": len(self.calls)}


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


@dataclass
class WsHarness:
    """aiohttp WebSocket server standing in for the /ws endpoint."""

    accept_gate: asyncio.Event = field(default_factory=asyncio.Event)
    request_seen: asyncio.Event = field(default_factory=asyncio.Event)
    sockets: list[web.WebSocketResponse] = field(default_factory=list)
    received: list[str] = field(default_factory=list)
    origin: str = ""
    url: str = ""

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        self.request_seen.set()
        await self.accept_gate.wait()
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                self.received.append(msg.data)
        return ws

    async def on_shutdown(self, _app: web.Application) -> None:
        for ws in self.sockets:
            await ws.close()

    async def wait_connected(self, count: int = 1) -> web.WebSocketResponse:
        await eventually(lambda: len(self.sockets) >= count)
        return self.sockets[count - 1]

    async def push(self, raw: str) -> None:
        await self.sockets[-1].send_str(raw)


@asynccontextmanager
async def serve_ws(*, hold_handshake: bool = False) -> AsyncIterator[WsHarness]:
    harness = WsHarness()
    if not hold_handshake:
        harness.accept_gate.set()
    app = web.Application()
    app.router.add_get("/ws", harness.handler)
    app.on_shutdown.append(harness.on_shutdown)

    server = TestServer(app)
    await server.start_server()
    harness.origin = f"http://{server.host}:{server.port}"
    harness.url = build_ws_url(harness.origin)
    try:
        yield harness
    finally:
        harness.accept_gate.set()
        await server.close()
