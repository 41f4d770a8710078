"""Pydantic schemas for Post."""
from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.user import UserBrief


class PostCreate(CamelModel):
    title: str = Field("", max_length=100)
    content: str = ""
    images: list[str] = Field(default_factory=list)


class PostUpdate(CamelModel):
    # Empty or missing fields leave the stored value unchanged
    title: str | None = Field(None, max_length=100)
    content: str | None = None


class PostResponse(CamelModel):
    id: UUID
    title: str
    content: str
    images: list[str] = Field(default_factory=list)
    author: UserBrief | None = None
    likes: list[UserBrief] | None = None  # Only on single-post reads
    likes_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class PostData(CamelModel):
    post: PostResponse


class PostListData(CamelModel):
    posts: list[PostResponse]
    count: int


class LikeData(CamelModel):
    likes_count: int
    is_liked: bool
