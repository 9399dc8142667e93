from datetime import datetime, timezone

import pytest

from documents.application.storage import backup_document
from documents.domain.backup import MANUAL_BACKUP, snapshot_document
from shared.exceptions import AuthorizationError


async def _create(client, headers, **body) -> dict:
    resp = await client.post("/api/documents/", json=body, headers=headers)
    assert resp.status_code == 201
    return resp.json()


async def _stats(client, headers) -> dict:
    resp = await client.get("/api/storage/stats", headers=headers)
    assert resp.status_code == 200
    return resp.json()


class RecordingBackups:
    def __init__(self):
        self.created = []

    async def create(self, backup):
        self.created.append(backup)
        return backup


async def test_backup_document(client, auth_headers):
    doc = await _create(client, auth_headers, title="Notes", content="<p>hi</p>")

    resp = await client.post(f"/api/storage/backup/{doc['id']}", headers=auth_headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["message"] == "Backup created successfully"
    assert data["document_id"] == doc["id"]
    assert data["reason"] == MANUAL_BACKUP

    stats = await _stats(client, auth_headers)
    assert stats["users"] == 1
    assert stats["documents"] == 1
    assert stats["versions"] == 1
    assert stats["backups"] == 1
    assert stats["backup_bytes"] > 0


async def test_backup_requires_read_access(client, auth_headers, user_headers):
    doc = await _create(client, auth_headers)
    _, other = await user_headers("2")

    resp = await client.post(f"/api/storage/backup/{doc['id']}", headers=other)
    assert resp.status_code == 403
    resp = await client.post("/api/storage/backup/missing", headers=auth_headers)
    assert resp.status_code == 404
    assert (await _stats(client, auth_headers))["backups"] == 0


async def test_delete_keeps_a_backup(client, auth_headers):
    doc = await _create(client, auth_headers)

    resp = await client.delete(f"/api/documents/{doc['id']}", headers=auth_headers)
    assert resp.status_code == 200

    stats = await _stats(client, auth_headers)
    assert stats["documents"] == 0
    assert stats["versions"] == 0
    assert stats["backups"] == 1


async def test_stats_require_auth(client):
    resp = await client.get("/api/storage/stats")
    assert resp.status_code in (401, 403)


async def test_backup_copies_whole_document(memory_repo, notes, bob, mallory):
    backups = RecordingBackups()
    now = datetime(2024, 5, 2, tzinfo=timezone.utc)

    backup = await backup_document(memory_repo, backups, "notes", bob.id, now=now)

    assert backups.created == [backup]
    assert backup.backed_up_at == now
    assert backup.snapshot == snapshot_document(notes)
    assert backup.snapshot["collaborators"] == ["bob"]
    assert backup.snapshot["content"] == "<p>hi</p>"
    with pytest.raises(AuthorizationError):
        await backup_document(memory_repo, backups, "notes", mallory.id)