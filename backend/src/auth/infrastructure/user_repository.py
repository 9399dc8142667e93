import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.domain.entities import User
from auth.infrastructure.models import UserModel
from shared.exceptions import ConflictError, PersistenceError
from shared.infrastructure.timestamps import as_utc

logger = logging.getLogger(__name__)


class DbUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> User | None:
        result = await self._execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        result = await self._execute(
            select(UserModel).where(UserModel.email == email)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None

    async def list_all(self) -> list[User]:
        result = await self._execute(
            select(UserModel).order_by(UserModel.name.asc())
        )
        return [_to_entity(m) for m in result.scalars().all()]

    async def create(self, user: User) -> User:
        model = UserModel(
            id=user.id,
            email=user.email,
            name=user.name,
            avatar=user.avatar,
            password_hash=user.password_hash,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("User already exists")
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceError() from exc
        await self.session.refresh(model)
        return _to_entity(model)

    async def _execute(self, statement):
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.exception("Failed to read users")
            raise PersistenceError() from exc


def _to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        email=model.email,
        name=model.name,
        avatar=model.avatar,
        password_hash=model.password_hash,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )
