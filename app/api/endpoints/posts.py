"""Posts CRUD and like toggle."""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import DB, CurrentUser, OptionalUser, Uploader, parse_post_create, parse_post_update
from app.schemas.envelope import Envelope
from app.schemas.post import LikeData, PostCreate, PostData, PostListData, PostUpdate
from app.services.post_service import (
    create_post,
    delete_post,
    get_post,
    get_user_liked_post_ids,
    list_posts,
    post_to_response,
    toggle_post_like,
    update_post,
)
from app.services.storage_service import ImageFile

router = APIRouter(prefix="/posts", tags=["posts"])

PostCreateForm = Annotated[tuple[PostCreate, list[ImageFile]], Depends(parse_post_create)]
PostUpdateForm = Annotated[tuple[PostUpdate, list[ImageFile]], Depends(parse_post_update)]


@router.post("", response_model=Envelope[PostData], status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(current_user: CurrentUser, form: PostCreateForm, db: DB, uploader: Uploader):
    data, images = form
    post = await create_post(db, uploader, current_user.id, data, images)
    await db.commit()
    return Envelope(message="Post created", data=PostData(post=post_to_response(post)))


@router.get("", response_model=Envelope[PostListData])
async def list_posts_endpoint(current_user: OptionalUser, db: DB):
    posts = await list_posts(db)
    liked_ids = await get_user_liked_post_ids(db, current_user.id, [p.id for p in posts]) if current_user else set()
    items = [post_to_response(p, is_liked=p.id in liked_ids) for p in posts]
    return Envelope(data=PostListData(posts=items, count=len(items)))


@router.get("/{post_id}", response_model=Envelope[PostData])
async def get_post_endpoint(post_id: UUID, current_user: OptionalUser, db: DB):
    post = await get_post(db, post_id)
    is_liked = bool(current_user) and any(like.user_id == current_user.id for like in post.likes)
    return Envelope(data=PostData(post=post_to_response(post, is_liked=is_liked, include_likes=True)))


@router.put("/{post_id}", response_model=Envelope[PostData])
async def update_post_endpoint(
    post_id: UUID,
    current_user: CurrentUser,
    form: PostUpdateForm,
    db: DB,
    uploader: Uploader,
):
    data, images = form
    post = await update_post(db, uploader, post_id, current_user.id, data, images)
    liked_ids = await get_user_liked_post_ids(db, current_user.id, [post.id])
    await db.commit()
    return Envelope(message="Post updated", data=PostData(post=post_to_response(post, is_liked=post.id in liked_ids)))


@router.delete("/{post_id}", response_model=Envelope[None])
async def delete_post_endpoint(post_id: UUID, current_user: CurrentUser, db: DB, uploader: Uploader):
    await delete_post(db, post_id, current_user.id, uploader)
    await db.commit()
    return Envelope(message="Post deleted")


@router.post("/{post_id}/like", response_model=Envelope[LikeData])
async def toggle_like_endpoint(post_id: UUID, current_user: CurrentUser, db: DB):
    result = await toggle_post_like(db, post_id, current_user.id)
    await db.commit()
    return Envelope(
        message="Post liked" if result.is_liked else "Like removed",
        data=LikeData(likes_count=result.likes_count, is_liked=result.is_liked),
    )
