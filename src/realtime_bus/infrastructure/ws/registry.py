"""Subscriber registry: synchronous fan-out of envelopes to handlers."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from realtime_bus.infrastructure.ws.protocol import AnyEnvelope

logger = logging.getLogger(__name__)

Handler = Callable[[AnyEnvelope], Any]
Unsubscribe = Callable[[], None]


class SubscriberRegistry:
    """Set of envelope handlers keyed by identity.

    Every handler receives every envelope and filters by ``type`` itself.
    Must only be used from the event loop thread.
    """

    def __init__(self) -> None:
        self._handlers: set[Handler] = set()
        self._pending: set[asyncio.Future[Any]] = set()

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, handler: object) -> bool:
        return handler in self._handlers

    def subscribe(self, handler: Handler) -> Unsubscribe:
        self._handlers.add(handler)

        def unsubscribe() -> None:
            self._handlers.discard(handler)

        return unsubscribe

    def dispatch(self, envelope: AnyEnvelope) -> int:
        """Invoke each registered handler once; returns how many ran cleanly.

        Iterates over a snapshot: handlers added during the pass wait for the
        next envelope, handlers removed during the pass are skipped.
        """
        ok = 0
        for handler in tuple(self._handlers):
            if handler not in self._handlers:
                continue
            try:
                result = handler(envelope)
            except Exception:
                logger.exception("Envelope handler %r failed on %s", handler, envelope.type)
                continue
            if inspect.isawaitable(result):
                self._schedule(result, handler, envelope.type)
            ok += 1
        return ok

    def _schedule(self, awaitable: Any, handler: Handler, envelope_type: str) -> None:
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def _done(fut: asyncio.Future[Any]) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                logger.error(
                    "Async follow-up of handler %r failed on %s",
                    handler, envelope_type, exc_info=exc,
                )

        future.add_done_callback(_done)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def cancel_pending(self) -> None:
        for future in tuple(self._pending):
            future.cancel()

    def clear(self) -> None:
        self._handlers.clear()
