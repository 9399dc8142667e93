import json
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.infrastructure.models import UserModel
from documents.domain.backup import DocumentBackup, StorageStats
from documents.infrastructure.models import (
    DocumentBackupModel,
    DocumentModel,
    DocumentVersionModel,
)
from shared.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class DbBackupRepository:
    """Append-only store of document backups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, backup: DocumentBackup) -> DocumentBackup:
        snapshot = json.dumps(backup.snapshot)
        self.session.add(
            DocumentBackupModel(
                id=backup.id,
                document_id=backup.document_id,
                reason=backup.reason,
                snapshot=snapshot,
                size=len(snapshot.encode()),
                backed_up_at=backup.backed_up_at,
            )
        )
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to back up document %s", backup.document_id)
            await self.session.rollback()
            raise PersistenceError() from exc
        return backup

    async def stats(self) -> StorageStats:
        try:
            users = await self.session.scalar(select(func.count()).select_from(UserModel))
            documents = await self.session.scalar(
                select(func.count()).select_from(DocumentModel)
            )
            versions = await self.session.scalar(
                select(func.count()).select_from(DocumentVersionModel)
            )
            backups, size = (
                await self.session.execute(
                    select(
                        func.count(), func.coalesce(func.sum(DocumentBackupModel.size), 0)
                    ).select_from(DocumentBackupModel)
                )
            ).one()
        except SQLAlchemyError as exc:
            logger.exception("Failed to read storage stats")
            raise PersistenceError() from exc
        return StorageStats(
            users=users,
            documents=documents,
            versions=versions,
            backups=backups,
            backup_bytes=size,
        )
