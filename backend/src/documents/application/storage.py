import logging
from datetime import datetime

from documents.application.services import get_document
from documents.domain.backup import MANUAL_BACKUP, DocumentBackup, StorageStats, build_backup
from documents.domain.repository import BackupRepository, DocumentRepository
from shared.infrastructure.timestamps import utcnow

logger = logging.getLogger(__name__)


async def backup_document(
    repo: DocumentRepository,
    backups: BackupRepository,
    document_id: str,
    user_id: str,
    now: datetime | None = None,
    reason: str = MANUAL_BACKUP,
) -> DocumentBackup:
    doc = await get_document(repo, document_id, user_id)
    backup = await backups.create(build_backup(doc, now or utcnow(), reason))
    logger.info("Backed up document %s (%s) for %s", document_id, reason, user_id)
    return backup


async def storage_stats(backups: BackupRepository) -> StorageStats:
    return await backups.stats()
