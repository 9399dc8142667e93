import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from documents.domain.entities import Document, DocumentVersion
from documents.infrastructure.models import (
    CollaboratorModel,
    DocumentModel,
    DocumentVersionModel,
)
from shared.exceptions import PersistenceError
from shared.infrastructure.timestamps import as_utc

logger = logging.getLogger(__name__)


class DbDocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, document_id: str) -> Document | None:
        model = await self._get_model(document_id)
        return _to_entity(model) if model else None

    async def list_for_user(self, user_id: str) -> list[Document]:
        shared_ids = select(CollaboratorModel.document_id).where(
            CollaboratorModel.user_id == user_id
        )
        result = await self.session.execute(
            select(DocumentModel)
            .where(
                (DocumentModel.owner_id == user_id) | DocumentModel.id.in_(shared_ids)
            )
            .order_by(DocumentModel.updated_at.desc())
        )
        return [_to_entity(m) for m in result.scalars().all()]

    async def create(self, document: Document) -> Document:
        model = DocumentModel(
            id=document.id,
            title=document.title,
            content=document.content,
            owner_id=document.owner_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
            collaborators=[
                CollaboratorModel(user_id=user_id) for user_id in document.collaborators
            ],
            versions=[_version_to_model(v) for v in document.versions],
        )
        self.session.add(model)
        await self._commit()
        return await self.get_by_id(document.id)

    async def save(self, document: Document) -> Document:
        """Write the whole aggregate: fields, collaborators and version history."""
        model = await self._get_model(document.id)
        if model is None:
            return await self.create(document)

        model.title = document.title
        model.content = document.content
        model.updated_at = document.updated_at

        model.collaborators = [
            c for c in model.collaborators if c.user_id in document.collaborators
        ]
        existing = {c.user_id for c in model.collaborators}
        for user_id in document.collaborators - existing:
            model.collaborators.append(CollaboratorModel(user_id=user_id))

        kept = {v.id for v in document.versions}
        model.versions = [v for v in model.versions if v.id in kept]
        stored = {v.id for v in model.versions}
        for version in document.versions:
            if version.id not in stored:
                model.versions.append(_version_to_model(version))

        await self._commit()
        return await self.get_by_id(document.id)

    async def delete(self, document_id: str) -> bool:
        model = await self._get_model(document_id)
        if not model:
            return False
        await self.session.delete(model)
        await self._commit()
        return True

    async def _get_model(self, document_id: str) -> DocumentModel | None:
        try:
            result = await self.session.execute(
                select(DocumentModel).where(DocumentModel.id == document_id)
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to load document %s", document_id)
            raise PersistenceError() from exc
        return result.scalar_one_or_none()

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to commit document changes")
            await self.session.rollback()
            raise PersistenceError() from exc


def repository_factory(
    session_factory: async_sessionmaker,
) -> Callable[[], AbstractAsyncContextManager[DbDocumentRepository]]:
    """Build a callable that opens a repository bound to a fresh session."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[DbDocumentRepository]:
        async with session_factory() as session:
            yield DbDocumentRepository(session)

    return _open


def _version_to_model(version: DocumentVersion) -> DocumentVersionModel:
    return DocumentVersionModel(
        id=version.id,
        content=version.content,
        author_id=version.author_id,
        author_name=version.author_name,
        change_description=version.change_description,
        seq=version.seq,
        created_at=version.created_at,
    )


def _to_entity(model: DocumentModel) -> Document:
    versions = [
        DocumentVersion(
            id=v.id,
            content=v.content,
            created_at=as_utc(v.created_at),
            author_id=v.author_id,
            author_name=v.author_name,
            change_description=v.change_description,
            seq=v.seq,
        )
        for v in model.versions
    ]
    versions.sort(key=lambda v: (v.created_at, v.seq), reverse=True)
    return Document(
        id=model.id,
        title=model.title,
        content=model.content,
        owner_id=model.owner_id,
        collaborators={c.user_id for c in model.collaborators},
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
        versions=versions,
    )
