from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.domain.entities import Principal
from documents.application.storage import backup_document, storage_stats
from documents.infrastructure.backup_repository import DbBackupRepository
from documents.infrastructure.document_repository import DbDocumentRepository
from documents.interfaces.schemas import BackupResponse, StorageStatsResponse
from shared.dependencies import get_db, get_principal

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/stats", response_model=StorageStatsResponse)
async def stats(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    found = await storage_stats(DbBackupRepository(db))
    return StorageStatsResponse(
        users=found.users,
        documents=found.documents,
        versions=found.versions,
        backups=found.backups,
        backup_bytes=found.backup_bytes,
    )


@router.post("/backup/{document_id}", response_model=BackupResponse, status_code=201)
async def backup(
    document_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    created = await backup_document(
        DbDocumentRepository(db), DbBackupRepository(db), document_id, principal.id
    )
    return BackupResponse(
        id=created.id,
        document_id=created.document_id,
        reason=created.reason,
        backed_up_at=created.backed_up_at,
    )
