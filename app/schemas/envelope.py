"""Uniform response envelope: {success, message?, data?}."""
from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    message: str | None = None
    data: DataT | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    reason: str
    error: str | None = None  # Only in DEBUG for unexpected errors
