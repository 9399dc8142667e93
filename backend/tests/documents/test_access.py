from documents.domain.access import (
    can_delete,
    can_manage_collaborators,
    can_read,
    can_write,
)
from documents.domain.entities import Document


def _doc() -> Document:
    return Document(
        id="d1", title="Notes", content="", owner_id="owner", collaborators={"collab"}
    )


def test_owner_has_every_permission():
    doc = _doc()
    assert can_read(doc, "owner")
    assert can_write(doc, "owner")
    assert can_manage_collaborators(doc, "owner")
    assert can_delete(doc, "owner")


def test_collaborator_can_read_and_write_only():
    doc = _doc()
    assert can_read(doc, "collab")
    assert can_write(doc, "collab")
    assert not can_manage_collaborators(doc, "collab")
    assert not can_delete(doc, "collab")


def test_stranger_is_denied_without_raising():
    doc = _doc()
    assert not can_read(doc, "stranger")
    assert not can_write(doc, "stranger")
    assert not can_manage_collaborators(doc, "stranger")
    assert not can_delete(doc, "stranger")
