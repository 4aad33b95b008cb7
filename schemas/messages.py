import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class MalformedMessageError(ValueError):
    """Raised when an inbound frame is not a JSON object."""


class MessageType(str, Enum):
    JOIN = "join"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    CHAT = "chat"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: str) -> "MessageType":
        """Map a wire tag to a member; anything unrecognized is UNKNOWN."""
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


# Types whose raw frame is forwarded untouched to the rest of the room
RELAYED_TYPES = frozenset({
    MessageType.OFFER,
    MessageType.ANSWER,
    MessageType.ICE_CANDIDATE,
    MessageType.CHAT,
})

PEER_JOINED = "peer-joined"


def _as_text(value: Any) -> str:
    # Scalars render as text; missing, null and nested values read as empty
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Envelope(BaseModel):
    """Inbound signaling message. Fields other than type/roomId are kept but never read."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    room_id: str = Field("", alias="roomId")

    @field_validator("type", "room_id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        text = _as_text(value)
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(f"not encodable as UTF-8: {e.reason}") from e
        return text

    @property
    def kind(self) -> MessageType:
        return MessageType.from_tag(self.type)


class PeerJoinedMessage(BaseModel):
    type: str = PEER_JOINED
    room_id: str = Field(..., serialization_alias="roomId")
    data: Optional[Any] = None

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


def parse_envelope(raw: str) -> Envelope:
    """Parse a raw text frame into an Envelope.

    Raises MalformedMessageError if the frame is not valid JSON, not a JSON object,
    or carries a type/roomId that can't be encoded as UTF-8.
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        # JSONDecodeError is a ValueError; deep nesting exhausts the decoder stack
        raise MalformedMessageError(f"Frame is not valid JSON: {type(e).__name__}") from e
    if not isinstance(data, dict):
        raise MalformedMessageError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return Envelope.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid envelope fields: {e.error_count()} error(s)") from e
