from __future__ import annotations

from typing import Callable

# (title, description)
Notify = Callable[[str, str], None]

NEW_MESSAGE_TITLE = "New Message"
PREVIEW_LIMIT = 50


def message_preview(sender_name: str | None, message: str, limit: int = PREVIEW_LIMIT) -> str:
    """``"<sender>: <text>"`` with the text cut at ``limit`` chars plus ``...``."""
    text = message[:limit] + ("..." if len(message) > limit else "")
    return f"{sender_name or 'Unknown'}: {text}"
