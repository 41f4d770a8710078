"""Comment business logic."""
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import NotFound, ValidationError
from app.core.permissions import ensure_can_mutate
from app.models.comment import Comment
from app.models.engagement import Dislike, Like
from app.models.post import Post
from app.schemas.comment import CommentResponse
from app.services.post_service import user_to_brief

REACTIONS = {"like": Like, "dislike": Dislike}


@dataclass
class ReactionResult:
    likes_count: int
    dislikes_count: int
    is_liked: bool
    is_disliked: bool


async def _ensure_post_exists(db: AsyncSession, post_id: UUID) -> None:
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Post not found")


async def _get_comment_or_404(db: AsyncSession, comment_id: UUID) -> Comment:
    result = await db.execute(select(Comment).where(Comment.id == comment_id))
    comment = result.scalar_one_or_none()
    if not comment:
        raise NotFound("Comment not found")
    return comment


async def list_comments(db: AsyncSession, post_id: UUID) -> list[Comment]:
    await _ensure_post_exists(db, post_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(desc(Comment.created_at))
        .options(selectinload(Comment.author))
    )
    return list(result.scalars().all())


async def create_comment(db: AsyncSession, post_id: UUID, author_id: UUID, content: str) -> Comment:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required")
    await _ensure_post_exists(db, post_id)
    comment = Comment(author_id=author_id, post_id=post_id, content=content)
    db.add(comment)
    await db.flush()
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment.id)
        .options(selectinload(Comment.author))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def delete_comment(db: AsyncSession, comment_id: UUID, acting_user_id: UUID) -> None:
    comment = await _get_comment_or_404(db, comment_id)
    ensure_can_mutate(comment, acting_user_id, "You can only delete your own comments")
    await db.delete(comment)
    await db.flush()


async def _has_reaction(db: AsyncSession, model, comment_id: UUID, user_id: UUID):
    result = await db.execute(
        select(model).where(model.comment_id == comment_id, model.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def toggle_comment_reaction(
    db: AsyncSession,
    comment_id: UUID,
    acting_user_id: UUID,
    kind: str,
) -> ReactionResult:
    """Toggle the user's like or dislike on a comment. The two sets are independent."""
    model = REACTIONS[kind]
    counter = f"{kind}s_count"
    comment = await _get_comment_or_404(db, comment_id)
    existing = await _has_reaction(db, model, comment_id, acting_user_id)
    current = getattr(comment, counter) or 0
    if existing:
        await db.delete(existing)
        setattr(comment, counter, max(0, current - 1))
    else:
        db.add(model(user_id=acting_user_id, comment_id=comment_id))
        setattr(comment, counter, current + 1)
    await db.flush()
    liked = await _has_reaction(db, Like, comment_id, acting_user_id)
    disliked = await _has_reaction(db, Dislike, comment_id, acting_user_id)
    return ReactionResult(
        likes_count=comment.likes_count or 0,
        dislikes_count=comment.dislikes_count or 0,
        is_liked=liked is not None,
        is_disliked=disliked is not None,
    )


async def get_user_reacted_comment_ids(
    db: AsyncSession, user_id: UUID, comment_ids: list[UUID]
) -> tuple[set[UUID], set[UUID]]:
    """Return (liked, disliked) comment IDs for the user."""
    if not comment_ids:
        return set(), set()
    liked = await db.execute(
        select(Like.comment_id).where(Like.comment_id.in_(comment_ids), Like.user_id == user_id)
    )
    disliked = await db.execute(
        select(Dislike.comment_id).where(Dislike.comment_id.in_(comment_ids), Dislike.user_id == user_id)
    )
    return {r[0] for r in liked.all() if r[0]}, {r[0] for r in disliked.all() if r[0]}


def comment_to_response(comment: Comment, is_liked: bool = False, is_disliked: bool = False) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        content=comment.content,
        author=user_to_brief(comment.author) if comment.author else None,
        likes_count=comment.likes_count or 0,
        dislikes_count=comment.dislikes_count or 0,
        is_liked=is_liked,
        is_disliked=is_disliked,
        created_at=comment.created_at,
    )
