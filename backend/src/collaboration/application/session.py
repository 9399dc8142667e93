import logging
from datetime import datetime
from typing import Any

from auth.domain.entities import Principal
from collaboration.domain.entities import Connection, Participant, SessionState
from collaboration.domain.events import ClientEvent, ClientEventType, ServerEventType
from documents.application.services import apply_content_change, load_document
from documents.domain.entities import Document, DocumentVersion
from documents.domain.repository import DocumentRepository
from documents.domain.versioning import SnapshotPolicy, VersionLedger

logger = logging.getLogger(__name__)


class DocumentSession:
    """Live collaboration room for a single document.

    Holds the participants currently connected to the document and the
    authoritative in-memory copy of it. Content mutations must be called
    with the document's lock held (see ``SessionRegistry``); presence
    relays and membership changes need no lock.
    """

    def __init__(
        self,
        document_id: str,
        ledger: VersionLedger,
        policy: SnapshotPolicy,
    ):
        self.document_id = document_id
        self.ledger = ledger
        self.policy = policy
        self.document: Document | None = None
        self.participants: dict[str, Participant] = {}
        self.state = SessionState.UNLOADED

    @property
    def content(self) -> str | None:
        return self.document.content if self.document else None

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def participant_list(self) -> list[dict]:
        return [p.to_dict() for p in self.participants.values()]

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self.participants

    def participants_of(self, user_id: str) -> list[Participant]:
        return [p for p in self.participants.values() if p.user.id == user_id]

    async def load(self, repo: DocumentRepository) -> None:
        self.activate(await load_document(repo, self.document_id))

    def activate(self, document: Document) -> None:
        self.document = document
        self.state = SessionState.ACTIVE

    async def join(self, connection: Connection, now: datetime) -> Participant:
        existing = self.participants.get(connection.id)
        if existing is not None:
            await self.send(existing, ServerEventType.ROOM_USERS, self.participant_list())
            return existing

        participant = Participant(connection=connection, joined_at=now)
        self.participants[connection.id] = participant
        self.state = SessionState.ACTIVE
        participants = self.participant_list()

        await self.broadcast(
            ServerEventType.USER_JOINED,
            {"user": connection.principal.to_dict(), "participants": participants},
            exclude=connection.id,
        )
        await self.send(participant, ServerEventType.ROOM_USERS, participants)
        logger.info("%s joined document %s", connection.principal.name, self.document_id)
        return participant

    async def leave(self, connection_id: str) -> Participant | None:
        participant = self.participants.pop(connection_id, None)
        if participant is None:
            return None

        if self.participants:
            await self.broadcast(
                ServerEventType.USER_LEFT,
                {"user": participant.user.to_dict(), "participants": self.participant_list()},
            )
        else:
            self.state = SessionState.EMPTY
        logger.info("%s left document %s", participant.user.name, self.document_id)
        return participant

    async def apply_change(
        self,
        repo: DocumentRepository,
        author: Principal,
        content: str,
        now: datetime,
    ) -> Document | None:
        updated = await apply_content_change(
            repo, self.document_id, author, content, self.ledger, self.policy, now
        )
        if updated is None:
            return None
        await self.publish_update(updated, author)
        return updated

    async def publish_update(self, document: Document, author: Principal) -> None:
        """Adopt an already persisted document and announce it to everyone."""
        self.document = document
        await self.broadcast(
            ServerEventType.DOCUMENT_UPDATED,
            {
                "content": document.content,
                "updatedBy": author.name,
                "updatedAt": document.updated_at.isoformat(),
            },
        )
        logger.info("Document %s updated by %s", self.document_id, author.name)

    async def announce_restore(
        self,
        document: Document,
        version: DocumentVersion,
        restored_by: Principal,
        restored_at: datetime,
    ) -> None:
        self.document = document
        await self.broadcast(
            ServerEventType.DOCUMENT_RESTORED,
            {
                "documentId": document.id,
                "content": document.content,
                "restoredBy": restored_by.name,
                "restoredAt": restored_at.isoformat(),
                "fromVersion": {
                    "id": version.id,
                    "createdAt": version.created_at.isoformat(),
                    "authorName": version.author_name,
                },
            },
        )

    async def relay(self, sender: Connection, event: ClientEvent) -> None:
        user = sender.principal
        if event.type is ClientEventType.CURSOR_MOVE:
            name = ServerEventType.CURSOR_UPDATED
            data = {
                "userId": user.id,
                "userName": user.name,
                "position": event.payload.position,
                "selection": event.payload.selection,
            }
        elif event.type is ClientEventType.TYPING:
            name = ServerEventType.USER_TYPING
            data = {"userId": user.id, "userName": user.name, "isTyping": event.payload.is_typing}
        else:
            logger.warning("Refusing to relay %s as presence", event.type)
            return
        await self.broadcast(name, data, exclude=sender.id)

    async def broadcast(
        self, event: ServerEventType, data: Any, exclude: str | None = None
    ) -> None:
        for participant in list(self.participants.values()):
            if participant.connection_id == exclude:
                continue
            await self.send(participant, event, data)

    async def send(self, participant: Participant, event: ServerEventType, data: Any) -> None:
        try:
            await participant.connection.send(event.value, data)
        except Exception:
            logger.warning(
                "Failed to deliver %s to connection %s", event.value, participant.connection_id
            )
