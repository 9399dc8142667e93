from typing import Protocol

from documents.domain.backup import DocumentBackup, StorageStats
from documents.domain.entities import Document


class DocumentRepository(Protocol):
    async def get_by_id(self, document_id: str) -> Document | None: ...

    async def list_for_user(self, user_id: str) -> list[Document]: ...

    async def create(self, document: Document) -> Document: ...

    async def save(self, document: Document) -> Document: ...

    async def delete(self, document_id: str) -> bool: ...


class BackupRepository(Protocol):
    async def create(self, backup: DocumentBackup) -> DocumentBackup: ...

    async def stats(self) -> StorageStats: ...
