from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from documents.domain.entities import Document

MANUAL_BACKUP = "manual"
BEFORE_DELETE = "before_delete"


@dataclass(frozen=True)
class DocumentBackup:
    """Point-in-time copy of a whole document. Backups are never updated."""

    id: str
    document_id: str
    snapshot: dict
    backed_up_at: datetime
    reason: str = MANUAL_BACKUP


@dataclass(frozen=True)
class StorageStats:
    users: int
    documents: int
    versions: int
    backups: int
    backup_bytes: int


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def snapshot_document(document: Document) -> dict:
    return {
        "id": document.id,
        "title": document.title,
        "content": document.content,
        "ownerId": document.owner_id,
        "collaborators": sorted(document.collaborators),
        "createdAt": _iso(document.created_at),
        "updatedAt": _iso(document.updated_at),
        "versions": [
            {
                "id": v.id,
                "content": v.content,
                "createdAt": v.created_at.isoformat(),
                "authorId": v.author_id,
                "authorName": v.author_name,
                "changeDescription": v.change_description,
                "seq": v.seq,
            }
            for v in document.versions
        ],
    }


def build_backup(document: Document, now: datetime, reason: str = MANUAL_BACKUP) -> DocumentBackup:
    return DocumentBackup(
        id=uuid4().hex,
        document_id=document.id,
        snapshot=snapshot_document(document),
        backed_up_at=now,
        reason=reason,
    )
