from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_TITLE = "Untitled Document"
DEFAULT_CONTENT = "<p>Start typing here...</p>"

AUTO_SNAPSHOT = "Auto-snapshot"
MANUAL_SAVE = "Manual save"
CONTENT_UPDATED = "Content updated"
INITIAL_VERSION = "Initial version"


@dataclass(frozen=True)
class DocumentVersion:
    id: str
    content: str
    created_at: datetime
    author_id: str
    author_name: str
    change_description: str | None = None
    seq: int = 0

    @property
    def is_auto_snapshot(self) -> bool:
        return AUTO_SNAPSHOT in (self.change_description or "")


@dataclass
class Document:
    id: str
    title: str
    content: str
    owner_id: str
    collaborators: set[str] = field(default_factory=set)
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)
    versions: list[DocumentVersion] = field(default_factory=list)
