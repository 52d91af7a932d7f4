"""Query cache keys for the REST resources the realtime bus invalidates."""
from __future__ import annotations

from typing import Hashable

QueryKey = tuple[Hashable, ...]

MESSAGES = "/api/messages"
GROUP_MESSAGES = "/api/group-messages"


def direct_messages_key() -> QueryKey:
    return (MESSAGES,)


def group_messages_key() -> QueryKey:
    return (GROUP_MESSAGES,)


def group_replies_key(group_message_id: int) -> QueryKey:
    return (GROUP_MESSAGES, group_message_id, "replies")


def key_path(key: QueryKey) -> str:
    """REST path of a key: its segments joined with ``/``."""
    return "/".join(str(part) for part in key)


def matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix
