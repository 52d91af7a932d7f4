"""Realtime envelope models.

Every frame on ``/ws`` is a JSON object tagged by ``type``. Known types parse
into their own model; anything else becomes an :class:`UnknownEnvelope` so
newer servers can add types without breaking older clients.
"""
from __future__ import annotations

import logging
from typing import Any, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from realtime_bus.domain.value_objects.enums import EnvelopeType
from realtime_bus.infrastructure.bus.serializer import decode_envelope

logger = logging.getLogger(__name__)

_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
    frozen=True,
)


class DirectMessageData(BaseModel):
    model_config = _WIRE_CONFIG

    sender_id: int
    receiver_id: int
    id: int | None = None
    message_type: str | None = None
    message: str = ""
    sender_name: str | None = None


class GroupMessageData(BaseModel):
    model_config = _WIRE_CONFIG

    id: int | None = None
    sender_id: int | None = None
    title: str | None = None
    message: str | None = None


class Envelope(BaseModel):
    """Base of all envelopes; extra top-level fields are preserved."""

    model_config = _WIRE_CONFIG

    type: str

    def to_dict(self) -> dict[str, Any]:
        """Wire form: camelCase keys, only the fields that were actually set."""
        body = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        body.pop("type", None)
        return {"type": self.type, **body}


class NewMessage(Envelope):
    type: str = EnvelopeType.NEW_MESSAGE.value
    data: DirectMessageData


class NewGroupMessage(Envelope):
    type: str = EnvelopeType.NEW_GROUP_MESSAGE.value
    data: GroupMessageData | None = None


class GroupMessageReply(Envelope):
    type: str = EnvelopeType.GROUP_MESSAGE_REPLY.value
    group_message_id: int
    data: dict[str, Any] | None = None


class UnknownEnvelope(Envelope):
    data: Any = None


AnyEnvelope = Union[NewMessage, NewGroupMessage, GroupMessageReply, UnknownEnvelope]

_MODELS: dict[str, type[Envelope]] = {
    EnvelopeType.NEW_MESSAGE: NewMessage,
    EnvelopeType.NEW_GROUP_MESSAGE: NewGroupMessage,
    EnvelopeType.GROUP_MESSAGE_REPLY: GroupMessageReply,
}


def envelope_from_dict(data: dict[str, Any]) -> AnyEnvelope:
    model = _MODELS.get(data["type"])
    if model is None:
        return UnknownEnvelope.model_validate(data)
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        logger.warning(
            "Envelope %s does not match its schema, delivering uninterpreted: %s",
            data["type"], exc.errors(include_url=False),
        )
        return UnknownEnvelope.model_validate(data)


def parse_envelope(raw: str | bytes | bytearray) -> AnyEnvelope:
    """Decode one inbound frame. Raises MalformedEnvelopeError."""
    return envelope_from_dict(decode_envelope(raw))
