"""Pydantic schemas for Comment."""
from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.user import UserBrief


class CommentCreate(CamelModel):
    content: str = Field("", max_length=500)


class CommentResponse(CamelModel):
    id: UUID
    post_id: UUID
    content: str
    author: UserBrief | None = None
    likes_count: int = 0
    dislikes_count: int = 0
    is_liked: bool = False
    is_disliked: bool = False
    created_at: datetime


class CommentData(CamelModel):
    comment: CommentResponse


class CommentListData(CamelModel):
    comments: list[CommentResponse]
    count: int


class ReactionData(CamelModel):
    likes_count: int
    dislikes_count: int
    is_liked: bool
    is_disliked: bool
