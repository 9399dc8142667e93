from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from auth.domain.entities import Principal


class SessionState(StrEnum):
    UNLOADED = "unloaded"
    ACTIVE = "active"
    EMPTY = "empty"


class Connection(Protocol):
    """A live, authenticated client link that can receive server events."""

    id: str
    principal: Principal

    async def send(self, event: str, data: Any) -> None: ...


@dataclass
class Participant:
    connection: Connection
    joined_at: datetime

    @property
    def connection_id(self) -> str:
        return self.connection.id

    @property
    def user(self) -> Principal:
        return self.connection.principal

    def to_dict(self) -> dict:
        return {
            **self.user.to_dict(),
            "connectionId": self.connection_id,
            "joinedAt": self.joined_at.isoformat(),
        }
