from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth.domain.entities import Principal
from auth.infrastructure.user_repository import DbUserRepository
from collaboration.application.registry import SessionRegistry
from documents.application.export import export_document
from documents.application.services import (
    add_collaborator,
    create_document,
    create_version,
    delete_document,
    get_document,
    get_version,
    list_documents,
    list_versions,
    remove_collaborator,
)
from documents.domain.entities import Document, DocumentVersion
from documents.infrastructure.backup_repository import DbBackupRepository
from documents.infrastructure.document_repository import DbDocumentRepository
from documents.interfaces.schemas import (
    AddCollaboratorRequest,
    CreateDocumentRequest,
    CreateVersionRequest,
    DocumentDetailResponse,
    DocumentResponse,
    MessageResponse,
    RestoreResponse,
    UpdateDocumentRequest,
    VersionListResponse,
    VersionResponse,
    VersionSummary,
)
from shared.dependencies import get_db, get_principal, get_registry

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("/", response_model=DocumentDetailResponse, status_code=201)
async def create(
    body: CreateDocumentRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    repo = DbDocumentRepository(db)
    doc = await create_document(repo, principal, title=body.title, content=body.content)
    return _detail(doc)


@router.get("/", response_model=list[DocumentResponse])
async def list_all(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    repo = DbDocumentRepository(db)
    return [_summary(doc) for doc in await list_documents(repo, principal.id)]


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_one(
    document_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    repo = DbDocumentRepository(db)
    return _detail(await get_document(repo, document_id, principal.id))


@router.put("/{document_id}", response_model=DocumentDetailResponse)
async def update(
    document_id: str,
    body: UpdateDocumentRequest,
    principal: Principal = Depends(get_principal),
    registry: SessionRegistry = Depends(get_registry),
):
    doc = await registry.update_document(
        document_id, principal, title=body.title, content=body.content
    )
    return _detail(doc)


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete(
    document_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = DbDocumentRepository(db)
    async with registry.lock(document_id):
        await delete_document(
            repo,
            document_id=document_id,
            user_id=principal.id,
            backups=DbBackupRepository(db),
        )
    await registry.discard(document_id)
    return MessageResponse(message="Document deleted successfully")


@router.post("/{document_id}/collaborators", response_model=DocumentResponse)
async def add_collaborator_route(
    document_id: str,
    body: AddCollaboratorRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = DbDocumentRepository(db)
    async with registry.lock(document_id):
        doc = await add_collaborator(
            repo, DbUserRepository(db), document_id, principal.id, body.email
        )
        await registry.refresh_access(doc)
    return _summary(doc)


@router.delete(
    "/{document_id}/collaborators/{collaborator_id}", response_model=DocumentResponse
)
async def remove_collaborator_route(
    document_id: str,
    collaborator_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = DbDocumentRepository(db)
    async with registry.lock(document_id):
        doc = await remove_collaborator(repo, document_id, principal.id, collaborator_id)
        await registry.refresh_access(doc)
    return _summary(doc)


@router.get("/{document_id}/versions", response_model=VersionListResponse)
async def versions(
    document_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    repo = DbDocumentRepository(db)
    found = await list_versions(repo, document_id, principal.id)
    return VersionListResponse(
        document_id=document_id, versions=[_version(v) for v in found]
    )


@router.get("/{document_id}/versions/{version_id}", response_model=VersionResponse)
async def version(
    document_id: str,
    version_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = DbDocumentRepository(db)
    found = await get_version(repo, document_id, principal.id, version_id, registry.ledger)
    return _version(found)


@router.post("/{document_id}/versions", response_model=VersionResponse, status_code=201)
async def snapshot(
    document_id: str,
    body: CreateVersionRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = DbDocumentRepository(db)
    async with registry.lock(document_id):
        created = await create_version(
            repo,
            document_id,
            principal,
            registry.ledger,
            registry.clock(),
            body.change_description,
        )
    return _version(created)


@router.post("/{document_id}/restore/{version_id}", response_model=RestoreResponse)
async def restore(
    document_id: str,
    version_id: str,
    principal: Principal = Depends(get_principal),
    registry: SessionRegistry = Depends(get_registry),
):
    doc, source = await registry.restore(document_id, principal, version_id)
    return RestoreResponse(
        restored_at=doc.updated_at,
        from_version=VersionSummary(
            id=source.id, created_at=source.created_at, author_name=source.author_name
        ),
    )


@router.get("/{document_id}/export/{fmt}")
async def export(
    document_id: str,
    fmt: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    repo = DbDocumentRepository(db)
    exported = export_document(await get_document(repo, document_id, principal.id), fmt)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


def _summary(doc: Document) -> DocumentResponse:
    return DocumentResponse(
        id=doc.id,
        title=doc.title,
        content=doc.content,
        owner_id=doc.owner_id,
        collaborators=sorted(doc.collaborators),
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


def _detail(doc: Document) -> DocumentDetailResponse:
    return DocumentDetailResponse(
        **_summary(doc).model_dump(), versions=[_version(v) for v in doc.versions]
    )


def _version(v: DocumentVersion) -> VersionResponse:
    return VersionResponse(
        id=v.id,
        content=v.content,
        created_at=v.created_at,
        author_id=v.author_id,
        author_name=v.author_name,
        change_description=v.change_description,
        is_auto_snapshot=v.is_auto_snapshot,
    )
