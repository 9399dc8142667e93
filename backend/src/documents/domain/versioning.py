from datetime import datetime, timedelta
from uuid import uuid4

from auth.domain.entities import Principal
from documents.domain.entities import AUTO_SNAPSHOT, Document, DocumentVersion

DEFAULT_MAX_VERSIONS = 50
DEFAULT_SNAPSHOT_INTERVAL = timedelta(minutes=30)


def build_version(
    document: Document,
    content: str,
    author: Principal,
    now: datetime,
    change_description: str | None = None,
) -> DocumentVersion:
    next_seq = max((v.seq for v in document.versions), default=0) + 1
    return DocumentVersion(
        id=uuid4().hex,
        content=content,
        created_at=now,
        author_id=author.id,
        author_name=author.name,
        change_description=change_description,
        seq=next_seq,
    )


class VersionLedger:
    """Bounded, newest-first history of content snapshots."""

    def __init__(self, max_versions: int = DEFAULT_MAX_VERSIONS):
        if max_versions < 1:
            raise ValueError("max_versions must be at least 1")
        self.max_versions = max_versions

    def commit(self, document: Document, version: DocumentVersion) -> None:
        versions = [*document.versions, version]
        # seq breaks ties between versions created in the same instant
        versions.sort(key=lambda v: (v.created_at, v.seq), reverse=True)
        document.versions = versions[: self.max_versions]
        if document.updated_at is None or version.created_at > document.updated_at:
            document.updated_at = version.created_at

    def find(self, document: Document, version_id: str) -> DocumentVersion | None:
        return next((v for v in document.versions if v.id == version_id), None)


class SnapshotPolicy:
    """Throttles automatic snapshots to one per author per interval."""

    def __init__(self, interval: timedelta = DEFAULT_SNAPSHOT_INTERVAL):
        self.interval = interval

    def should_snapshot(self, document: Document, author_id: str, now: datetime) -> bool:
        last = self.last_auto_snapshot(document, author_id)
        return last is None or now - last.created_at > self.interval

    def last_auto_snapshot(self, document: Document, author_id: str) -> DocumentVersion | None:
        return next(
            (
                v
                for v in document.versions
                if v.is_auto_snapshot and v.author_id == author_id
            ),
            None,
        )

    def build_snapshot(
        self, document: Document, author: Principal, now: datetime
    ) -> DocumentVersion:
        return build_version(document, document.content, author, now, AUTO_SNAPSHOT)
