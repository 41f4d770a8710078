"""Post business logic."""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import NotFound, ValidationError
from app.core.permissions import ensure_can_mutate
from app.models.engagement import Like
from app.models.post import Post
from app.models.user import User
from app.schemas.post import PostCreate, PostResponse, PostUpdate
from app.schemas.user import UserBrief
from app.services.storage_service import ImageFile, ImageUploader


@dataclass
class LikeResult:
    likes_count: int
    is_liked: bool


def _log(msg: str, *args):
    print(f"[Posts] {msg}", *args)


async def _get_post_or_404(db: AsyncSession, post_id: UUID) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound("Post not found")
    return post


async def load_post(db: AsyncSession, post_id: UUID, with_likes: bool = False) -> Post:
    """Fetch a post with author (and optionally liking users) loaded."""
    options = [selectinload(Post.author)]
    if with_likes:
        options.append(selectinload(Post.likes).selectinload(Like.user))
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound("Post not found")
    return post


async def create_post(
    db: AsyncSession,
    uploader: ImageUploader,
    author_id: UUID,
    data: PostCreate,
    images: list[ImageFile] | None = None,
) -> Post:
    title = data.title.strip()
    if not title or not data.content.strip():
        raise ValidationError("Title and content are required")
    stored = await uploader.store_all(images) if images else []
    urls = list(data.images) + stored
    post = Post(
        author_id=author_id,
        title=title,
        content=data.content,
        images=urls,
        likes_count=0,
    )
    db.add(post)
    try:
        await db.flush()
    except Exception:
        await uploader.discard(stored)
        raise
    _log("Created:", post.id, "images:", len(urls))
    return await load_post(db, post.id)


async def list_posts(db: AsyncSession) -> list[Post]:
    result = await db.execute(
        select(Post).order_by(desc(Post.created_at)).options(selectinload(Post.author))
    )
    return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: UUID) -> Post:
    return await load_post(db, post_id, with_likes=True)


async def update_post(
    db: AsyncSession,
    uploader: ImageUploader,
    post_id: UUID,
    acting_user_id: UUID,
    data: PostUpdate,
    images: list[ImageFile] | None = None,
) -> Post:
    post = await _get_post_or_404(db, post_id)
    ensure_can_mutate(post, acting_user_id, "You can only edit your own posts")
    if data.title and data.title.strip():
        post.title = data.title.strip()
    if data.content and data.content.strip():
        post.content = data.content
    replaced: list[str] = []
    stored: list[str] = []
    if images:
        stored = await uploader.store_all(images)
        replaced = [url for url in (post.images or []) if url not in stored]
        post.images = stored
    post.updated_at = datetime.utcnow()
    try:
        await db.flush()
    except Exception:
        await uploader.discard(stored)
        raise
    await uploader.discard(replaced)
    return await load_post(db, post.id)


async def delete_post(
    db: AsyncSession,
    post_id: UUID,
    acting_user_id: UUID,
    uploader: ImageUploader | None = None,
) -> None:
    post = await _get_post_or_404(db, post_id)
    ensure_can_mutate(post, acting_user_id, "You can only delete your own posts")
    images = list(post.images or [])
    await db.delete(post)
    await db.flush()
    if uploader is not None:
        await uploader.discard(images)
    _log("Deleted:", post_id)


async def toggle_post_like(db: AsyncSession, post_id: UUID, acting_user_id: UUID) -> LikeResult:
    """Like the post if the user has not liked it yet, otherwise remove the like.

    Read-then-write without a lock: two concurrent toggles by the same user may race.
    """
    post = await _get_post_or_404(db, post_id)
    result = await db.execute(
        select(Like).where(Like.post_id == post_id, Like.user_id == acting_user_id)
    )
    like = result.scalar_one_or_none()
    if like:
        await db.delete(like)
        post.likes_count = max(0, (post.likes_count or 0) - 1)
    else:
        db.add(Like(user_id=acting_user_id, post_id=post_id))
        post.likes_count = (post.likes_count or 0) + 1
    await db.flush()
    return LikeResult(likes_count=post.likes_count, is_liked=like is None)


async def get_user_liked_post_ids(db: AsyncSession, user_id: UUID, post_ids: list[UUID]) -> set[UUID]:
    """Return set of post IDs that the user has liked."""
    if not post_ids:
        return set()
    result = await db.execute(
        select(Like.post_id).where(
            Like.user_id == user_id,
            Like.post_id.in_(post_ids),
        )
    )
    return set(row[0] for row in result.all() if row[0])


def user_to_brief(user: User) -> UserBrief:
    return UserBrief(id=user.id, name=user.name, email=user.email)


def post_to_response(post: Post, is_liked: bool = False, include_likes: bool = False) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        images=post.images or [],
        author=user_to_brief(post.author) if post.author else None,
        likes=[user_to_brief(like.user) for like in post.likes] if include_likes else None,
        likes_count=post.likes_count or 0,
        is_liked=is_liked,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )
