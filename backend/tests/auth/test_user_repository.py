import pytest
from sqlalchemy.exc import OperationalError

from auth.infrastructure.user_repository import DbUserRepository
from shared.exceptions import PersistenceError


class UnavailableSession:
    async def execute(self, statement):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


@pytest.fixture
def repo():
    return DbUserRepository(UnavailableSession())


async def test_get_by_id_wraps_driver_errors(repo):
    with pytest.raises(PersistenceError):
        await repo.get_by_id("alice")


async def test_get_by_email_wraps_driver_errors(repo):
    with pytest.raises(PersistenceError):
        await repo.get_by_email("alice@example.com")


async def test_list_all_wraps_driver_errors(repo):
    with pytest.raises(PersistenceError):
        await repo.list_all()
