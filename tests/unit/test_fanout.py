from __future__ import annotations

import json
from dataclasses import dataclass, field

import pytest

from realtime_bus import app as app_module
from realtime_bus.api.v1.routers import ws as ws_router
from realtime_bus.infrastructure.bus.redis_pubsub import RedisPubSubPublisher, RedisPubSubSubscriber
from realtime_bus.infrastructure.ws.manager import ConnectionManager
from realtime_bus.infrastructure.ws.protocol import GroupMessageReply, parse_envelope
from realtime_bus.scripts import publish_event
from tests.conftest import new_message


@dataclass(eq=False)
class FakeSocket:
    fail: bool = False
    accepted: bool = False
    sent: list[str] = field(default_factory=list)

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)


@dataclass
class FakeRedis:
    published: list[tuple[str, str]] = field(default_factory=list)
    closed: bool = False

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_broadcast_reaches_every_connection():
    manager = ConnectionManager()
    sockets = [FakeSocket(), FakeSocket()]
    for s in sockets:
        await manager.connect(s)  # type: ignore[arg-type]

    delivered = await manager.broadcast(new_message())

    assert delivered == 2
    assert all(s.accepted for s in sockets)
    assert [json.loads(s.sent[0]) for s in sockets] == [new_message(), new_message()]


@pytest.mark.asyncio
async def test_broadcast_prunes_dead_connections():
    manager = ConnectionManager()
    alive, dead = FakeSocket(), FakeSocket(fail=True)
    await manager.connect(alive)  # type: ignore[arg-type]
    await manager.connect(dead)  # type: ignore[arg-type]

    delivered = await manager.broadcast({"type": "NEW_GROUP_MESSAGE"})

    assert delivered == 1
    assert len(manager) == 1
    assert await manager.broadcast({"type": "NEW_GROUP_MESSAGE"}) == 1


@pytest.mark.asyncio
async def test_publisher_writes_serialized_envelope():
    redis = FakeRedis()
    envelope = GroupMessageReply(group_message_id=42)

    await RedisPubSubPublisher(redis).publish("realtime.fanout", envelope)  # type: ignore[arg-type]

    channel, raw = redis.published[0]
    assert channel == "realtime.fanout"
    assert json.loads(raw) == {"type": "GROUP_MESSAGE_REPLY", "groupMessageId": 42}


@pytest.mark.asyncio
async def test_subscriber_hands_parsed_envelopes_on():
    received = []

    async def callback(envelope):
        received.append(envelope)

    subscriber = RedisPubSubSubscriber(FakeRedis(), "realtime.fanout", callback)  # type: ignore[arg-type]
    await subscriber.handle(json.dumps(new_message()))

    assert [e.to_dict() for e in received] == [new_message()]


@pytest.mark.asyncio
async def test_subscriber_drops_malformed_and_survives_callback_errors(caplog):
    calls = 0

    async def callback(envelope):
        nonlocal calls
        calls += 1
        raise RuntimeError("broadcast failed")

    subscriber = RedisPubSubSubscriber(FakeRedis(), "realtime.fanout", callback)  # type: ignore[arg-type]
    await subscriber.handle("{oops")
    await subscriber.handle('{"type": "NEW_GROUP_MESSAGE"}')

    assert calls == 1
    assert "malformed pubsub envelope" in caplog.text
    assert "Error processing pubsub envelope NEW_GROUP_MESSAGE" in caplog.text


@pytest.mark.asyncio
async def test_pubsub_envelope_is_broadcast_to_local_sockets(monkeypatch):
    manager = ConnectionManager()
    socket = FakeSocket()
    await manager.connect(socket)  # type: ignore[arg-type]
    monkeypatch.setattr(ws_router, "manager", manager)

    await app_module._on_pubsub_envelope(parse_envelope('{"type": "GROUP_MESSAGE_REPLY", "groupMessageId": 7}'))

    assert json.loads(socket.sent[0]) == {"type": "GROUP_MESSAGE_REPLY", "groupMessageId": 7}


@pytest.mark.asyncio
async def test_publish_script_sends_validated_envelope(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(publish_event.aioredis, "from_url", lambda *a, **kw: redis)

    await publish_event.publish('{"type": "NEW_GROUP_MESSAGE", "data": {"id": 7}}', "realtime.fanout")

    assert json.loads(redis.published[0][1]) == {"type": "NEW_GROUP_MESSAGE", "data": {"id": 7}}
    assert redis.closed is True
