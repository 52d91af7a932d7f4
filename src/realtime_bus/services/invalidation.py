"""Envelope handlers that mark query caches stale.

Each factory returns a fresh handler closure; mount it on a live session (or
subscribe it to a channel directly) for as long as the feature is on screen.
"""
from __future__ import annotations

import logging

from realtime_bus.application.dto.viewer import Viewer
from realtime_bus.domain.value_objects.enums import DirectMessageKind, EnvelopeType
from realtime_bus.domain.value_objects.query_keys import (
    direct_messages_key,
    group_messages_key,
    group_replies_key,
)
from realtime_bus.infrastructure.cache.query_cache import QueryCache
from realtime_bus.infrastructure.ws.protocol import (
    AnyEnvelope,
    GroupMessageReply,
    NewMessage,
)
from realtime_bus.infrastructure.ws.registry import Handler
from realtime_bus.services.notifications import NEW_MESSAGE_TITLE, Notify, message_preview

logger = logging.getLogger(__name__)


def invalidate_direct_messages(cache: QueryCache) -> Handler:
    """Any direct message makes the message list stale (admin inbox).

    Matches on ``type`` alone, so a payload that failed validation still counts.
    """

    def handler(envelope: AnyEnvelope) -> None:
        if envelope.type == EnvelopeType.NEW_MESSAGE:
            cache.invalidate(direct_messages_key())

    return handler


def watch_direct_messages(
    cache: QueryCache,
    viewer: Viewer,
    notify: Notify | None = None,
) -> Handler:
    """Only conversations the viewer takes part in; notifies on incoming ones."""

    def handler(envelope: AnyEnvelope) -> None:
        if not isinstance(envelope, NewMessage):
            return
        msg = envelope.data
        if viewer.user_id not in (msg.sender_id, msg.receiver_id):
            return
        cache.invalidate(direct_messages_key())
        if notify is not None and msg.receiver_id == viewer.user_id:
            notify(NEW_MESSAGE_TITLE, message_preview(msg.sender_name, msg.message))

    return handler


def watch_admin_private_messages(cache: QueryCache, viewer: Viewer) -> Handler:
    def handler(envelope: AnyEnvelope) -> None:
        if not isinstance(envelope, NewMessage):
            return
        msg = envelope.data
        if msg.message_type == DirectMessageKind.ADMIN_TO_TEAM_LEADER and msg.receiver_id == viewer.user_id:
            cache.invalidate(direct_messages_key())

    return handler


def invalidate_group_messages(cache: QueryCache) -> Handler:
    def handler(envelope: AnyEnvelope) -> None:
        if envelope.type == EnvelopeType.NEW_GROUP_MESSAGE:
            cache.invalidate(group_messages_key())

    return handler


def invalidate_group_replies(cache: QueryCache) -> Handler:
    """Only the reply list of the announcement named in the envelope."""

    def handler(envelope: AnyEnvelope) -> None:
        if isinstance(envelope, GroupMessageReply):
            cache.invalidate(group_replies_key(envelope.group_message_id))

    return handler


def handlers_for(
    viewer: Viewer,
    cache: QueryCache,
    notify: Notify | None = None,
) -> list[Handler]:
    """The invalidation handlers the viewer's role has on screen."""
    if viewer.is_admin:
        handlers = [invalidate_direct_messages(cache), invalidate_group_messages(cache)]
    elif viewer.is_team_leader:
        handlers = [
            watch_direct_messages(cache, viewer, notify),
            watch_admin_private_messages(cache, viewer),
            invalidate_group_messages(cache),
        ]
    else:
        handlers = [
            watch_direct_messages(cache, viewer, notify),
            invalidate_group_messages(cache),
            invalidate_group_replies(cache),
        ]
    logger.debug("Selected %d invalidation handlers for %s", len(handlers), viewer.role)
    return handlers
