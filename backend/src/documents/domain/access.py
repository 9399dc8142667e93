"""Authorization predicates for documents.

A document has exactly one owner and a set of collaborators. Owner and
collaborators may read and edit; only the owner may delete the document
or change who collaborates on it.
"""

from documents.domain.entities import Document
from shared.exceptions import AuthorizationError


def can_read(document: Document, user_id: str) -> bool:
    return user_id == document.owner_id or user_id in document.collaborators


def can_write(document: Document, user_id: str) -> bool:
    return can_read(document, user_id)


def can_manage_collaborators(document: Document, user_id: str) -> bool:
    return user_id == document.owner_id


def can_delete(document: Document, user_id: str) -> bool:
    return user_id == document.owner_id


def ensure_can_read(document: Document, user_id: str) -> None:
    if not can_read(document, user_id):
        raise AuthorizationError("Access denied")


def ensure_can_write(document: Document, user_id: str) -> None:
    if not can_write(document, user_id):
        raise AuthorizationError("Access denied")
