"""API dependencies: store session, services, authenticated user, post form parsing."""
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Annotated

import pydantic
from fastapi import Depends, Request
from starlette.datastructures import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AppError, ValidationError
from app.core.security import TokenService
from app.models.user import User
from app.schemas.post import PostCreate, PostUpdate
from app.services.auth_service import resolve_identity
from app.services.google_service import GoogleIdentityVerifier
from app.services.storage_service import ImageFile, ImageUploader

IMAGES_FIELD = "images"


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        yield session


async def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_uploader(request: Request) -> ImageUploader:
    return request.app.state.uploader


async def get_google_verifier(request: Request) -> GoogleIdentityVerifier:
    return request.app.state.google_verifier


DB = Annotated[AsyncSession, Depends(get_db)]
Tokens = Annotated[TokenService, Depends(get_token_service)]
Uploader = Annotated[ImageUploader, Depends(get_uploader)]
GoogleVerifier = Annotated[GoogleIdentityVerifier, Depends(get_google_verifier)]


async def get_current_user(request: Request, db: DB, tokens: Tokens) -> User:
    return await resolve_identity(db, tokens, request.headers.get("Authorization"))


async def get_current_user_optional(request: Request, db: DB, tokens: Tokens) -> User | None:
    """Like get_current_user, but a missing or bad token means a guest."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    try:
        return await resolve_identity(db, tokens, authorization)
    except AppError:
        return None


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_current_user_optional)]


@dataclass
class PostSubmission:
    fields: dict
    images: list[ImageFile] = field(default_factory=list)


async def _read_submission(request: Request, uploader: ImageUploader) -> PostSubmission:
    """Accept either a JSON body or multipart form data with up to N `images` files."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        files = [v for v in form.getlist(IMAGES_FIELD) if isinstance(v, UploadFile)]
        fields = {k: v for k, v in form.items() if isinstance(v, str) and k != IMAGES_FIELD}
        # Every file is checked before any is stored
        images = await uploader.admit(files)
        return PostSubmission(fields=fields, images=images)
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON or multipart form data")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return PostSubmission(fields=body)


def _parse(model, fields: dict):
    try:
        return model.model_validate(fields)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"{loc}: {first.get('msg')}" if loc else first.get("msg"))


async def parse_post_create(request: Request, uploader: Uploader) -> tuple[PostCreate, list[ImageFile]]:
    submission = await _read_submission(request, uploader)
    return _parse(PostCreate, submission.fields), submission.images


async def parse_post_update(request: Request, uploader: Uploader) -> tuple[PostUpdate, list[ImageFile]]:
    submission = await _read_submission(request, uploader)
    return _parse(PostUpdate, submission.fields), submission.images
