from datetime import timedelta

import pytest

from auth.application.services import register_user
from auth.infrastructure.user_repository import DbUserRepository
from documents.application.services import apply_content_change, create_document
from documents.domain.versioning import VersionLedger, build_version
from documents.infrastructure.document_repository import DbDocumentRepository, repository_factory


@pytest.fixture
async def owner(db):
    user = await register_user(
        DbUserRepository(db), email="alice@example.com", name="Alice", password="secret123"
    )
    return user.to_principal()


@pytest.fixture
async def collaborator(db):
    user = await register_user(
        DbUserRepository(db), email="bob@example.com", name="Bob", password="secret123"
    )
    return user.to_principal()


@pytest.fixture
def repo(db):
    return DbDocumentRepository(db)


async def test_create_and_load(repo, owner):
    created = await create_document(repo, owner, title="Notes", content="<p>hi</p>")
    loaded = await repo.get_by_id(created.id)
    assert loaded.title == "Notes"
    assert loaded.content == "<p>hi</p>"
    assert loaded.owner_id == owner.id
    assert len(loaded.versions) == 1
    assert loaded.created_at.tzinfo is not None


async def test_get_missing_returns_none(repo):
    assert await repo.get_by_id("missing") is None


async def test_save_syncs_collaborators(repo, owner, collaborator):
    doc = await create_document(repo, owner, title="Notes")
    doc.collaborators.add(collaborator.id)
    await repo.save(doc)
    assert (await repo.get_by_id(doc.id)).collaborators == {collaborator.id}

    doc.collaborators.clear()
    await repo.save(doc)
    assert (await repo.get_by_id(doc.id)).collaborators == set()


async def test_save_drops_evicted_versions(repo, owner, session_factory):
    doc = await create_document(repo, owner, title="Notes")
    ledger = VersionLedger(max_versions=2)
    for i in range(3):
        ledger.commit(doc, build_version(doc, f"v{i}", owner, doc.updated_at + timedelta(seconds=i + 1)))
        await repo.save(doc)

    async with repository_factory(session_factory)() as fresh:
        loaded = await fresh.get_by_id(doc.id)
    assert [v.content for v in loaded.versions] == ["v2", "v1"]


async def test_list_for_user(repo, owner, collaborator):
    shared = await create_document(repo, owner, title="Shared")
    await create_document(repo, owner, title="Private")
    shared.collaborators.add(collaborator.id)
    await repo.save(shared)

    assert {d.title for d in await repo.list_for_user(owner.id)} == {"Shared", "Private"}
    assert [d.title for d in await repo.list_for_user(collaborator.id)] == ["Shared"]


async def test_delete(repo, owner):
    doc = await create_document(repo, owner)
    assert await repo.delete(doc.id)
    assert await repo.get_by_id(doc.id) is None
    assert not await repo.delete(doc.id)


async def test_content_change_survives_reload(repo, owner, session_factory):
    doc = await create_document(repo, owner, content="<p>hi</p>")
    await apply_content_change(
        repo, doc.id, owner, "<p>hello</p>", VersionLedger(), None, doc.updated_at
    )

    async with repository_factory(session_factory)() as fresh:
        loaded = await fresh.get_by_id(doc.id)
    assert loaded.content == "<p>hello</p>"
    assert [v.content for v in loaded.versions][:1] == ["<p>hi</p>"]
