from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.application.services import verify_token
from auth.domain.entities import Principal, User
from auth.infrastructure.user_repository import DbUserRepository
from collaboration.application.registry import SessionRegistry
from shared.infrastructure.database import async_session

security = HTTPBearer()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    repo = DbUserRepository(db)
    return await verify_token(repo, credentials.credentials)


async def get_principal(current_user: User = Depends(get_current_user)) -> Principal:
    return current_user.to_principal()


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry
