import logging
from datetime import datetime
from uuid import uuid4

from auth.domain.entities import Principal
from auth.domain.repository import UserRepository
from documents.domain.access import (
    can_delete,
    can_manage_collaborators,
    ensure_can_read,
    ensure_can_write,
)
from documents.domain.backup import BEFORE_DELETE, build_backup
from documents.domain.entities import (
    CONTENT_UPDATED,
    DEFAULT_CONTENT,
    DEFAULT_TITLE,
    INITIAL_VERSION,
    MANUAL_SAVE,
    Document,
    DocumentVersion,
)
from documents.domain.repository import BackupRepository, DocumentRepository
from documents.domain.versioning import SnapshotPolicy, VersionLedger, build_version
from shared.exceptions import AuthorizationError, NotFoundError, ValidationError
from shared.infrastructure.timestamps import utcnow

logger = logging.getLogger(__name__)


async def create_document(
    repo: DocumentRepository,
    owner: Principal,
    title: str | None = None,
    content: str | None = None,
) -> Document:
    now = utcnow()
    doc = Document(
        id=uuid4().hex,
        title=title or DEFAULT_TITLE,
        content=content or DEFAULT_CONTENT,
        owner_id=owner.id,
        created_at=now,
        updated_at=now,
    )
    doc.versions.append(build_version(doc, doc.content, owner, now, INITIAL_VERSION))
    return await repo.create(doc)


async def load_document(repo: DocumentRepository, document_id: str) -> Document:
    doc = await repo.get_by_id(document_id)
    if not doc:
        raise NotFoundError("Document", document_id)
    return doc


async def get_document(
    repo: DocumentRepository, document_id: str, user_id: str
) -> Document:
    doc = await load_document(repo, document_id)
    ensure_can_read(doc, user_id)
    return doc


async def list_documents(repo: DocumentRepository, user_id: str) -> list[Document]:
    return await repo.list_for_user(user_id)


async def apply_content_change(
    repo: DocumentRepository,
    document_id: str,
    author: Principal,
    content: str | None,
    ledger: VersionLedger,
    policy: SnapshotPolicy | None,
    now: datetime,
    change_description: str = MANUAL_SAVE,
    title: str | None = None,
) -> Document | None:
    """Replace the document content, keeping the previous content as a version.

    Returns None when nothing changed. The caller must hold the per-document
    lock; the returned document is what was persisted.
    """
    doc = await load_document(repo, document_id)
    ensure_can_write(doc, author.id)

    content_changed = content is not None and content != doc.content
    title_changed = title is not None and title != doc.title
    if not content_changed and not title_changed:
        return None

    if content_changed:
        ledger.commit(doc, build_version(doc, doc.content, author, now, change_description))
        if policy is not None and policy.should_snapshot(doc, author.id, now):
            ledger.commit(doc, policy.build_snapshot(doc, author, now))
            logger.info("Auto-snapshot created for document %s by %s", doc.id, author.name)
        doc.content = content
    if title_changed:
        doc.title = title
    doc.updated_at = max(now, doc.updated_at) if doc.updated_at else now
    return await repo.save(doc)


async def update_document(
    repo: DocumentRepository,
    document_id: str,
    author: Principal,
    ledger: VersionLedger,
    now: datetime,
    title: str | None = None,
    content: str | None = None,
) -> Document:
    updated = await apply_content_change(
        repo,
        document_id,
        author,
        content or None,
        ledger,
        None,
        now,
        change_description=CONTENT_UPDATED,
        title=title or None,
    )
    return updated or await load_document(repo, document_id)


async def delete_document(
    repo: DocumentRepository,
    document_id: str,
    user_id: str,
    backups: BackupRepository | None = None,
) -> None:
    doc = await load_document(repo, document_id)
    if not can_delete(doc, user_id):
        raise AuthorizationError("Only the document owner can delete it")
    if backups is not None:
        await backups.create(build_backup(doc, utcnow(), BEFORE_DELETE))
    await repo.delete(document_id)
    logger.info("Document %s deleted by %s", document_id, user_id)


async def add_collaborator(
    repo: DocumentRepository,
    users: UserRepository,
    document_id: str,
    user_id: str,
    email: str,
) -> Document:
    doc = await load_document(repo, document_id)
    if not can_manage_collaborators(doc, user_id):
        raise AuthorizationError("Only the document owner can add collaborators")

    collaborator = await users.get_by_email(email)
    if not collaborator:
        raise NotFoundError("User", email)
    if collaborator.id == doc.owner_id:
        raise ValidationError("Cannot add owner as collaborator")
    if collaborator.id in doc.collaborators:
        return doc

    doc.collaborators.add(collaborator.id)
    doc.updated_at = utcnow()
    return await repo.save(doc)


async def remove_collaborator(
    repo: DocumentRepository,
    document_id: str,
    user_id: str,
    collaborator_id: str,
) -> Document:
    doc = await load_document(repo, document_id)
    if not can_manage_collaborators(doc, user_id):
        raise AuthorizationError("Only the document owner can remove collaborators")
    if collaborator_id not in doc.collaborators:
        raise NotFoundError("Collaborator", collaborator_id)

    doc.collaborators.discard(collaborator_id)
    doc.updated_at = utcnow()
    return await repo.save(doc)


async def list_versions(
    repo: DocumentRepository, document_id: str, user_id: str
) -> list[DocumentVersion]:
    doc = await get_document(repo, document_id, user_id)
    return doc.versions


async def get_version(
    repo: DocumentRepository,
    document_id: str,
    user_id: str,
    version_id: str,
    ledger: VersionLedger,
) -> DocumentVersion:
    doc = await get_document(repo, document_id, user_id)
    version = ledger.find(doc, version_id)
    if not version:
        raise NotFoundError("Version", version_id)
    return version


async def create_version(
    repo: DocumentRepository,
    document_id: str,
    author: Principal,
    ledger: VersionLedger,
    now: datetime,
    change_description: str | None = None,
) -> DocumentVersion:
    """Capture the current content on request. Never throttled."""
    doc = await load_document(repo, document_id)
    ensure_can_write(doc, author.id)
    version = build_version(doc, doc.content, author, now, change_description or MANUAL_SAVE)
    ledger.commit(doc, version)
    await repo.save(doc)
    return version


async def restore_version(
    repo: DocumentRepository,
    document_id: str,
    author: Principal,
    version_id: str,
    ledger: VersionLedger,
    now: datetime,
) -> tuple[Document, DocumentVersion]:
    doc = await load_document(repo, document_id)
    ensure_can_write(doc, author.id)
    target = ledger.find(doc, version_id)
    if not target:
        raise NotFoundError("Version", version_id)

    description = (
        "Auto-save before restoring to version from "
        f"{target.created_at:%Y-%m-%d %H:%M:%S} UTC"
    )
    ledger.commit(doc, build_version(doc, doc.content, author, now, description))
    doc.content = target.content
    doc.updated_at = max(now, doc.updated_at) if doc.updated_at else now
    saved = await repo.save(doc)
    logger.info(
        "Document %s restored to version %s by %s", document_id, version_id, author.name
    )
    return saved, target
