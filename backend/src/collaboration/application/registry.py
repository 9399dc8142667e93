import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any
from weakref import WeakValueDictionary

from auth.domain.entities import Principal
from collaboration.application.session import DocumentSession
from collaboration.domain.entities import Connection, Participant
from collaboration.domain.events import (
    PRESENCE_EVENTS,
    ClientEvent,
    ClientEventType,
    InvalidEventError,
    ServerEventType,
    parse_event,
)
from documents.application.services import (
    apply_content_change,
    restore_version,
    update_document,
)
from documents.domain.access import can_read
from documents.domain.entities import Document, DocumentVersion
from documents.domain.repository import DocumentRepository
from documents.domain.versioning import SnapshotPolicy, VersionLedger
from shared.exceptions import AppError, AuthorizationError
from shared.infrastructure.timestamps import utcnow

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], AbstractAsyncContextManager[DocumentRepository]]


class SessionRegistry:
    """Process-scoped owner of all live document sessions.

    Sessions exist only while they have participants. Every content
    mutation of a document runs under that document's lock, so two edits
    of the same document never interleave their read-modify-write while
    edits of different documents proceed independently.
    """

    def __init__(
        self,
        repository_factory: RepositoryFactory,
        ledger: VersionLedger | None = None,
        policy: SnapshotPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._open = repository_factory
        self.ledger = ledger or VersionLedger()
        self.policy = policy or SnapshotPolicy()
        self.clock = clock
        self._sessions: dict[str, DocumentSession] = {}
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._sessions

    def sessions(self) -> list[DocumentSession]:
        return list(self._sessions.values())

    def get(self, document_id: str) -> DocumentSession | None:
        return self._sessions.get(document_id)

    def lock(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    async def get_or_create(self, document_id: str) -> DocumentSession:
        """Return the live session for a document with a freshly loaded copy.

        A session that is not live yet comes back unregistered; ``join``
        registers it once its first participant is in.
        """
        session = self._sessions.get(document_id)
        if session is None:
            session = DocumentSession(document_id, self.ledger, self.policy)
        async with self._open() as repo:
            await session.load(repo)
        return session

    async def dispatch(self, connection: Connection, message: Any) -> None:
        """Validate one inbound frame and route it to its handler."""
        try:
            event = parse_event(message)
        except InvalidEventError as exc:
            logger.warning("Dropping frame from %s: %s", connection.id, exc.message)
            if exc.event_type not in PRESENCE_EVENTS:
                await connection.send(ServerEventType.ERROR.value, exc.message)
            return

        if event.is_presence:
            try:
                await self.relay(connection, event)
            except Exception:
                logger.warning("Presence relay failed for %s", connection.id, exc_info=True)
            return

        try:
            if event.type is ClientEventType.JOIN_DOCUMENT:
                await self.join(connection, event.document_id)
            elif event.type is ClientEventType.DOCUMENT_CHANGE:
                await self.apply_change(connection, event.document_id, event.payload.content)
        except AppError as exc:
            logger.warning("%s failed for %s: %s", event.type, connection.id, exc.message)
            await connection.send(ServerEventType.ERROR.value, exc.message)

    async def join(self, connection: Connection, document_id: str) -> Participant:
        async with self.lock(document_id):
            session = await self.get_or_create(document_id)
            if not can_read(session.document, connection.principal.id):
                raise AuthorizationError("Access denied")

            participant = await session.join(connection, self.clock())
            if document_id not in self._sessions:
                self._sessions[document_id] = session
                logger.info("Opened session for document %s", document_id)
            return participant

    async def apply_change(
        self, connection: Connection, document_id: str, content: str
    ) -> Document | None:
        author = connection.principal
        async with self.lock(document_id):
            now = self.clock()
            async with self._open() as repo:
                session = self._sessions.get(document_id)
                if session is not None:
                    return await session.apply_change(repo, author, content, now)
                return await apply_content_change(
                    repo, document_id, author, content, self.ledger, self.policy, now
                )

    async def relay(self, sender: Connection, event: ClientEvent) -> None:
        session = self._sessions.get(event.document_id)
        if session is None or sender.id not in session:
            logger.warning(
                "Dropping %s from %s: not in document %s",
                event.type,
                sender.id,
                event.document_id,
            )
            return
        await session.relay(sender, event)

    async def leave(self, connection_id: str, document_id: str) -> Participant | None:
        session = self._sessions.get(document_id)
        if session is None:
            return None
        participant = await session.leave(connection_id)
        if session.is_empty and self._sessions.get(document_id) is session:
            del self._sessions[document_id]
            logger.info("Closed session for document %s", document_id)
        return participant

    async def route_disconnect(self, connection_id: str) -> list[str]:
        """Remove a dropped connection from every session it belongs to."""
        left = []
        for session in list(self._sessions.values()):
            if connection_id in session:
                await self.leave(connection_id, session.document_id)
                left.append(session.document_id)
        return left

    async def update_document(
        self,
        document_id: str,
        author: Principal,
        title: str | None = None,
        content: str | None = None,
    ) -> Document:
        async with self.lock(document_id):
            async with self._open() as repo:
                document = await update_document(
                    repo, document_id, author, self.ledger, self.clock(), title, content
                )
            session = self._sessions.get(document_id)
            if session is not None and session.content != document.content:
                await session.publish_update(document, author)
            elif session is not None:
                session.document = document
            return document

    async def restore(
        self, document_id: str, author: Principal, version_id: str
    ) -> tuple[Document, DocumentVersion]:
        async with self.lock(document_id):
            now = self.clock()
            async with self._open() as repo:
                document, version = await restore_version(
                    repo, document_id, author, version_id, self.ledger, now
                )
            session = self._sessions.get(document_id)
            if session is not None:
                await session.announce_restore(document, version, author, now)
            return document, version

    async def refresh_access(self, document: Document) -> list[Participant]:
        """Adopt a document whose sharing changed; drop anyone who lost read access."""
        session = self._sessions.get(document.id)
        if session is None:
            return []
        session.document = document
        revoked = [p for p in session.participants.values() if not can_read(document, p.user.id)]
        for participant in revoked:
            await session.send(participant, ServerEventType.ERROR, "Access denied")
            await self.leave(participant.connection_id, document.id)
            logger.info("Revoked %s from document %s", participant.user.name, document.id)
        return revoked

    async def discard(self, document_id: str) -> None:
        """Drop the session of a deleted document, telling its participants."""
        session = self._sessions.pop(document_id, None)
        if session is not None:
            await session.broadcast(ServerEventType.ERROR, "Document not found")

