from datetime import datetime

from pydantic import BaseModel, EmailStr


class CreateDocumentRequest(BaseModel):
    title: str | None = None
    content: str | None = None


class UpdateDocumentRequest(BaseModel):
    title: str | None = None
    content: str | None = None


class AddCollaboratorRequest(BaseModel):
    email: EmailStr


class CreateVersionRequest(BaseModel):
    change_description: str | None = None


class VersionResponse(BaseModel):
    id: str
    content: str
    created_at: datetime
    author_id: str
    author_name: str
    change_description: str | None = None
    is_auto_snapshot: bool


class DocumentResponse(BaseModel):
    id: str
    title: str
    content: str
    owner_id: str
    collaborators: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentDetailResponse(DocumentResponse):
    versions: list[VersionResponse]


class VersionListResponse(BaseModel):
    document_id: str
    versions: list[VersionResponse]


class VersionSummary(BaseModel):
    id: str
    created_at: datetime
    author_name: str


class RestoreResponse(BaseModel):
    message: str = "Document restored successfully"
    restored_at: datetime
    from_version: VersionSummary


class MessageResponse(BaseModel):
    message: str


class BackupResponse(BaseModel):
    message: str = "Backup created successfully"
    id: str
    document_id: str
    reason: str
    backed_up_at: datetime


class StorageStatsResponse(BaseModel):
    users: int
    documents: int
    versions: int
    backups: int
    backup_bytes: int
