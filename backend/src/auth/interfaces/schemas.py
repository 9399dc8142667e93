from datetime import datetime

from pydantic import BaseModel, EmailStr


class RegisterRequest(BaseModel):
    email: EmailStr
    name: str
    password: str
    avatar: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSummary(BaseModel):
    id: str
    email: str
    name: str
    avatar: str | None = None
