"""Session protocol: validated inbound events and outbound event names.

Inbound frames look like ``{"event": "document-change", "data": {...}}``.
Payload keys are camelCase on the wire.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from shared.exceptions import ValidationError


class ClientEventType(StrEnum):
    JOIN_DOCUMENT = "join-document"
    DOCUMENT_CHANGE = "document-change"
    CURSOR_MOVE = "cursor-move"
    TYPING = "typing"


class ServerEventType(StrEnum):
    USER_JOINED = "user-joined"
    ROOM_USERS = "room-users"
    DOCUMENT_UPDATED = "document-updated"
    DOCUMENT_RESTORED = "document-restored"
    CURSOR_UPDATED = "cursor-updated"
    USER_TYPING = "user-typing"
    USER_LEFT = "user-left"
    ERROR = "error"


PRESENCE_EVENTS = frozenset({ClientEventType.CURSOR_MOVE, ClientEventType.TYPING})


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_id: str = Field(alias="documentId", min_length=1)


class JoinDocument(_Payload):
    pass


class DocumentChange(_Payload):
    content: str


class CursorMove(_Payload):
    position: int
    selection: Any = None


class Typing(_Payload):
    is_typing: bool = Field(alias="isTyping")


PAYLOADS: dict[ClientEventType, type[_Payload]] = {
    ClientEventType.JOIN_DOCUMENT: JoinDocument,
    ClientEventType.DOCUMENT_CHANGE: DocumentChange,
    ClientEventType.CURSOR_MOVE: CursorMove,
    ClientEventType.TYPING: Typing,
}


class InvalidEventError(ValidationError):
    """A frame that could not be turned into a known event."""

    def __init__(self, message: str, event_type: ClientEventType | None = None):
        super().__init__(message)
        self.event_type = event_type


@dataclass(frozen=True)
class ClientEvent:
    type: ClientEventType
    payload: _Payload

    @property
    def document_id(self) -> str:
        return self.payload.document_id

    @property
    def is_presence(self) -> bool:
        return self.type in PRESENCE_EVENTS


def parse_event(message: Any) -> ClientEvent:
    if not isinstance(message, dict):
        raise InvalidEventError("Message must be an object")
    try:
        event_type = ClientEventType(message.get("event"))
    except ValueError:
        raise InvalidEventError(f"Unknown event: {message.get('event')!r}")

    data = message.get("data")
    # join-document carries a bare document id
    if event_type is ClientEventType.JOIN_DOCUMENT and isinstance(data, str):
        data = {"documentId": data}
    try:
        payload = PAYLOADS[event_type].model_validate(data)
    except pydantic.ValidationError as exc:
        raise InvalidEventError(f"Invalid {event_type} payload: {exc.errors()[0]['msg']}", event_type)
    return ClientEvent(event_type, payload)
