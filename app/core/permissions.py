"""Ownership rules for posts and comments."""
from typing import Protocol
from uuid import UUID

from app.core.errors import Forbidden


class Owned(Protocol):
    author_id: UUID


def can_mutate(resource: Owned, acting_user_id: UUID) -> bool:
    """Only the author of a post or comment may edit or delete it."""
    return resource.author_id == acting_user_id


def ensure_can_mutate(resource: Owned, acting_user_id: UUID, message: str | None = None) -> None:
    if not can_mutate(resource, acting_user_id):
        raise Forbidden(message)
