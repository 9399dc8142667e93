from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class User:
    email: str
    name: str
    password_hash: str
    avatar: str | None = field(default=None)
    id: str | None = field(default=None)
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    def to_principal(self) -> "Principal":
        return Principal(id=self.id, name=self.name, email=self.email)


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request or connection."""

    id: str
    name: str
    email: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}
