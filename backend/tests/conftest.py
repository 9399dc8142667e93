import asyncio
import copy
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import auth.infrastructure.models  # noqa: F401
import documents.infrastructure.models  # noqa: F401
from auth.domain.entities import Principal
from collaboration.application.registry import SessionRegistry
from documents.domain.entities import Document
from documents.domain.versioning import SnapshotPolicy, VersionLedger
from documents.infrastructure.document_repository import repository_factory
from main import app
from shared.dependencies import get_db
from shared.exceptions import PersistenceError
from shared.infrastructure.database import Base


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def app_registry(session_factory):
    async def _override():
        async with session_factory() as session:
            yield session

    previous = app.state.registry
    registry = SessionRegistry(repository_factory(session_factory))
    app.state.registry = registry
    app.dependency_overrides[get_db] = _override
    yield registry
    app.dependency_overrides.clear()
    app.state.registry = previous


@pytest.fixture
async def client(app_registry):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_headers(client):
    """Register a user and return (user json, auth headers)."""

    async def _create(suffix: str = "", name: str = "Test User") -> tuple[dict, dict]:
        resp = await client.post(
            "/api/auth/register",
            json={
                "email": f"test{suffix}@example.com",
                "name": name,
                "password": "secret123",
            },
        )
        user = resp.json()
        resp = await client.post(
            "/api/auth/login",
            json={"email": f"test{suffix}@example.com", "password": "secret123"},
        )
        token = resp.json()["access_token"]
        return user, {"Authorization": f"Bearer {token}"}

    return _create


@pytest.fixture
async def auth_headers(user_headers) -> dict:
    _, headers = await user_headers()
    return headers


# In-memory collaborators for the session engine


class InMemoryDocumentRepository:
    """Stores copies so every load behaves like a fresh read from a store."""

    def __init__(self):
        self.documents: dict[str, Document] = {}
        self.fail_saves = False
        self.saves = 0

    async def get_by_id(self, document_id: str) -> Document | None:
        await asyncio.sleep(0)
        doc = self.documents.get(document_id)
        return copy.deepcopy(doc) if doc else None

    async def list_for_user(self, user_id: str) -> list[Document]:
        return [
            copy.deepcopy(d)
            for d in self.documents.values()
            if d.owner_id == user_id or user_id in d.collaborators
        ]

    async def create(self, document: Document) -> Document:
        return await self.save(document)

    async def save(self, document: Document) -> Document:
        await asyncio.sleep(0)
        if self.fail_saves:
            raise PersistenceError()
        self.saves += 1
        self.documents[document.id] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def delete(self, document_id: str) -> bool:
        return self.documents.pop(document_id, None) is not None


class RecordingConnection:
    def __init__(self, principal: Principal):
        self.id = uuid4().hex
        self.principal = principal
        self.sent: list[tuple[str, object]] = []

    async def send(self, event: str, data) -> None:
        self.sent.append((event, data))

    def received(self, event: str) -> list:
        return [data for name, data in self.sent if name == event]


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def memory_repo():
    return InMemoryDocumentRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(memory_repo, clock):
    @asynccontextmanager
    async def _open():
        yield memory_repo

    return SessionRegistry(
        _open,
        ledger=VersionLedger(50),
        policy=SnapshotPolicy(timedelta(minutes=30)),
        clock=clock,
    )


@pytest.fixture
def alice():
    return Principal(id="alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Principal(id="bob", name="Bob", email="bob@example.com")


@pytest.fixture
def mallory():
    return Principal(id="mallory", name="Mallory", email="mallory@example.com")


@pytest.fixture
def connect():
    return RecordingConnection


@pytest.fixture
def notes(memory_repo, clock, alice, bob):
    """Alice's document "Notes", shared with Bob."""
    doc = Document(
        id="notes",
        title="Notes",
        content="<p>hi</p>",
        owner_id=alice.id,
        collaborators={bob.id},
        created_at=clock(),
        updated_at=clock(),
    )
    memory_repo.documents[doc.id] = doc
    return doc
