from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from realtime_bus.application.exceptions import MalformedEnvelopeError
from realtime_bus.config import settings
from realtime_bus.domain.value_objects.enums import EnvelopeType
from realtime_bus.infrastructure.bus.serializer import encode_envelope
from realtime_bus.infrastructure.ws.manager import ConnectionManager
from realtime_bus.infrastructure.ws.protocol import UnknownEnvelope, parse_envelope

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


@router.websocket(settings.WS_PATH)
async def ws_updates(websocket: WebSocket) -> None:
    await manager.connect(websocket)
    try:
        await _read_loop(websocket)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error")
    finally:
        manager.disconnect(websocket)


async def _read_loop(ws: WebSocket) -> None:
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        # binary frames carry the same UTF-8 JSON as text ones
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes") or b""
        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelopeError:
            await ws.send_text(encode_envelope(
                UnknownEnvelope(type=EnvelopeType.ERROR.value, data={"code": "invalid_payload"})
            ))
            continue

        if envelope.type == EnvelopeType.PING:
            await ws.send_text(encode_envelope({"type": EnvelopeType.PONG.value}))
        else:
            # client-originated envelopes are reserved for future use
            logger.debug("Ignoring client envelope %s", envelope.type)
