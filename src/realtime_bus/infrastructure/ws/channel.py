"""Client side of the realtime bus: the one WebSocket channel of a session."""
from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from realtime_bus.application.exceptions import (
    ChannelClosedError,
    InvalidOriginError,
    MalformedEnvelopeError,
)
from realtime_bus.config import Settings
from realtime_bus.domain.value_objects.enums import ChannelState
from realtime_bus.infrastructure.bus.serializer import encode_envelope
from realtime_bus.infrastructure.ws.protocol import AnyEnvelope, parse_envelope
from realtime_bus.infrastructure.ws.reconnect import ReconnectPolicy
from realtime_bus.infrastructure.ws.registry import Handler, SubscriberRegistry, Unsubscribe

logger = logging.getLogger(__name__)

_WS_SCHEMES = {"https": "wss", "http": "ws", "wss": "wss", "ws": "ws"}


def build_ws_url(origin: str, path: str = "/ws") -> str:
    """Same host as the page, ``wss`` when the page was served over https."""
    parts = urlsplit(origin)
    scheme = _WS_SCHEMES.get(parts.scheme.lower())
    if scheme is None or not parts.netloc:
        raise InvalidOriginError(f"cannot derive a WebSocket URL from origin {origin!r}")
    return urlunsplit((scheme, parts.netloc, path, "", ""))


class RealtimeChannel:
    """Owns the transport, the read loop and the subscriber registry.

    State goes CONNECTING -> OPEN -> CLOSED. A remote close or transport
    error is logged and leaves the channel CLOSED; it is re-dialed only when
    a ReconnectPolicy is given. After disconnect() the channel is dead.
    """

    def __init__(
        self,
        url: str,
        *,
        registry: SubscriberRegistry | None = None,
        session: aiohttp.ClientSession | None = None,
        heartbeat: float | None = None,
        connect_timeout: float = 10.0,
        reconnect: ReconnectPolicy | None = None,
    ) -> None:
        self._url = url
        self._registry = registry or SubscriberRegistry()
        self._session = session
        self._owns_session = session is None
        self._heartbeat = heartbeat
        self._connect_timeout = connect_timeout
        self._reconnect = reconnect

        self._state = ChannelState.CONNECTING
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._latest: AnyEnvelope | None = None
        self._runner: asyncio.Task[None] | None = None
        self._disposed = False

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> RealtimeChannel:
        return cls(
            build_ws_url(settings.APP_ORIGIN, settings.WS_PATH),
            heartbeat=settings.WS_HEARTBEAT_SECONDS,
            connect_timeout=settings.WS_CONNECT_TIMEOUT,
            reconnect=ReconnectPolicy.from_settings(settings),
            **kwargs,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def latest(self) -> AnyEnvelope | None:
        """Last envelope received, for readers that do not subscribe."""
        return self._latest

    @property
    def running(self) -> bool:
        """True while the transport loop is alive, including reconnect waits."""
        return self._runner is not None and not self._runner.done()

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    def subscribe(self, handler: Handler) -> Unsubscribe:
        return self._registry.subscribe(handler)

    async def connect(self) -> None:
        """Dial the server and wait for the first handshake outcome.

        Connection failures are logged, not raised; check ``state``.
        """
        if self._disposed:
            raise ChannelClosedError("channel was disconnected; create a new one")
        if self._runner is not None:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, connect=self._connect_timeout),
            )
        attempted = asyncio.Event()
        self._runner = asyncio.create_task(self._run(attempted), name="realtime-channel")
        await attempted.wait()

    async def disconnect(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._state = ChannelState.CLOSING

        runner, self._runner = self._runner, None
        if runner is not None:
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Realtime channel runner for %s failed", self._url)
        self._ws = None

        if self._owns_session and self._session is not None:
            await self._session.close()
        self._registry.cancel_pending()
        self._registry.clear()
        self._state = ChannelState.CLOSED
        logger.info("Realtime channel to %s disconnected", self._url)

    async def send(self, envelope: Any) -> None:
        """Best-effort, at-most-once. Dropped unless the channel is OPEN."""
        ws = self._ws
        if self._state != ChannelState.OPEN or ws is None or ws.closed:
            logger.debug("Realtime channel is %s, dropping outbound envelope", self._state)
            return
        try:
            await ws.send_str(encode_envelope(envelope))
        except (ConnectionResetError, aiohttp.ClientError) as exc:
            logger.warning("Realtime channel send failed, envelope dropped: %s", exc)

    async def __aenter__(self) -> RealtimeChannel:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def _run(self, attempted: asyncio.Event) -> None:
        attempt = 0
        try:
            while True:
                self._state = ChannelState.CONNECTING
                ws = await self._dial()
                if ws is not None:
                    attempt = 0
                    self._ws = ws
                    self._state = ChannelState.OPEN
                    logger.info("Realtime channel connected to %s", self._url)
                    attempted.set()
                    await self._read_loop(ws)
                    self._ws = None

                self._state = ChannelState.CLOSED
                attempted.set()
                if self._reconnect is None:
                    return
                delay = self._reconnect.delay(attempt)
                if delay is None:
                    logger.error(
                        "Realtime channel giving up on %s after %d reconnect attempts",
                        self._url, attempt,
                    )
                    return
                attempt += 1
                logger.info("Realtime channel reconnecting in %.2fs (attempt %d)", delay, attempt)
                await asyncio.sleep(delay)
        except Exception:
            logger.exception("Realtime channel loop for %s crashed", self._url)
            self._state = ChannelState.CLOSED
        finally:
            attempted.set()

    async def _dial(self) -> aiohttp.ClientWebSocketResponse | None:
        assert self._session is not None
        try:
            return await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Realtime channel failed to connect to %s: %s", self._url, exc)
            return None

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._deliver(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error("Realtime channel transport error: %s", ws.exception())
                    break
        finally:
            if not ws.closed:
                await ws.close()
        logger.warning("Realtime channel to %s closed (code=%s)", self._url, ws.close_code)

    def _deliver(self, raw: str | bytes) -> None:
        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelopeError as exc:
            logger.warning("Dropping malformed envelope: %s", exc.detail)
            return
        self._latest = envelope
        self._registry.dispatch(envelope)
