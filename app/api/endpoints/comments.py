"""Comment endpoints: list/create under a post, delete, like/dislike toggles."""
from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DB, CurrentUser, OptionalUser
from app.schemas.comment import CommentCreate, CommentData, CommentListData, ReactionData
from app.schemas.envelope import Envelope
from app.services.comment_service import (
    comment_to_response,
    create_comment,
    delete_comment,
    get_user_reacted_comment_ids,
    list_comments,
    toggle_comment_reaction,
)

router = APIRouter(tags=["comments"])


@router.get("/posts/{post_id}/comments", response_model=Envelope[CommentListData])
async def list_post_comments(post_id: UUID, current_user: OptionalUser, db: DB):
    comments = await list_comments(db, post_id)
    liked, disliked = (
        await get_user_reacted_comment_ids(db, current_user.id, [c.id for c in comments])
        if current_user
        else (set(), set())
    )
    items = [comment_to_response(c, is_liked=c.id in liked, is_disliked=c.id in disliked) for c in comments]
    return Envelope(data=CommentListData(comments=items, count=len(items)))


@router.post(
    "/posts/{post_id}/comments",
    response_model=Envelope[CommentData],
    status_code=status.HTTP_201_CREATED,
)
async def create_post_comment(post_id: UUID, data: CommentCreate, current_user: CurrentUser, db: DB):
    comment = await create_comment(db, post_id, current_user.id, data.content)
    await db.commit()
    return Envelope(message="Comment created", data=CommentData(comment=comment_to_response(comment)))


@router.delete("/comments/{comment_id}", response_model=Envelope[None])
async def delete_post_comment(comment_id: UUID, current_user: CurrentUser, db: DB):
    await delete_comment(db, comment_id, current_user.id)
    await db.commit()
    return Envelope(message="Comment deleted")


async def _toggle(db, comment_id: UUID, user_id: UUID, kind: str) -> Envelope[ReactionData]:
    result = await toggle_comment_reaction(db, comment_id, user_id, kind)
    await db.commit()
    return Envelope(
        data=ReactionData(
            likes_count=result.likes_count,
            dislikes_count=result.dislikes_count,
            is_liked=result.is_liked,
            is_disliked=result.is_disliked,
        )
    )


@router.post("/comments/{comment_id}/like", response_model=Envelope[ReactionData])
async def like_comment(comment_id: UUID, current_user: CurrentUser, db: DB):
    return await _toggle(db, comment_id, current_user.id, "like")


@router.post("/comments/{comment_id}/dislike", response_model=Envelope[ReactionData])
async def dislike_comment(comment_id: UUID, current_user: CurrentUser, db: DB):
    return await _toggle(db, comment_id, current_user.id, "dislike")
