"""Pydantic schemas for User and authentication."""
from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., max_length=50)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class GoogleLoginRequest(CamelModel):
    credential: str = ""


class UserResponse(CamelModel):
    id: UUID
    email: str
    name: str
    profile_picture: str | None = None
    created_at: datetime


class UserBrief(CamelModel):
    """Author/liker display fields. Never carries the password hash."""
    id: UUID
    name: str
    email: str


class AuthData(CamelModel):
    user: UserResponse
    token: str


class UserData(CamelModel):
    user: UserResponse
