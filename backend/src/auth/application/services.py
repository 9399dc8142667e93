from datetime import timedelta
from uuid import uuid4

import bcrypt
import jwt

from auth.domain.entities import User
from auth.domain.repository import UserRepository
from shared.config import settings
from shared.exceptions import AuthenticationError, ConflictError
from shared.infrastructure.timestamps import utcnow


async def register_user(
    repo: UserRepository,
    email: str,
    name: str,
    password: str,
    avatar: str | None = None,
) -> User:
    if await repo.get_by_email(email):
        raise ConflictError("User already exists")

    now = utcnow()
    user = User(
        id=uuid4().hex,
        email=email,
        name=name,
        avatar=avatar,
        password_hash=bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode(),
        created_at=now,
        updated_at=now,
    )
    return await repo.create(user)


async def authenticate_user(
    repo: UserRepository, email: str, password: str
) -> tuple[User, str]:
    user = await repo.get_by_email(email)
    if not user or not bcrypt.checkpw(password.encode(), user.password_hash.encode()):
        raise AuthenticationError("Invalid credentials")

    token = create_token(user)
    return user, token


async def verify_token(repo: UserRepository, token: str) -> User:
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid or expired token")

    user = await repo.get_by_id(payload["sub"])
    if not user:
        raise AuthenticationError("User not found")
    return user


async def list_users(repo: UserRepository) -> list[User]:
    return await repo.list_all()


def create_token(user: User) -> str:
    now = utcnow()
    payload = {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
