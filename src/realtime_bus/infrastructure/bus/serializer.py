from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from realtime_bus.application.exceptions import MalformedEnvelopeError


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, BaseModel):
            return o.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return super().default(o)


def encode_envelope(envelope: Any) -> str:
    """Serialize an outbound envelope verbatim. No schema validation."""
    to_dict = getattr(envelope, "to_dict", None)
    if callable(to_dict):
        envelope = to_dict()
    return json.dumps(envelope, cls=_Encoder)


def decode_envelope(raw: str | bytes | bytearray) -> dict[str, Any]:
    """Parse an inbound frame into the raw envelope mapping.

    Raises MalformedEnvelopeError unless the frame is a JSON object with a
    string ``type``.
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError) as exc:
        raise MalformedEnvelopeError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedEnvelopeError(f"expected a JSON object, got {type(data).__name__}")
    if not isinstance(data.get("type"), str):
        raise MalformedEnvelopeError("missing string 'type' field")
    return data
