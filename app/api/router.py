"""API router aggregation."""
from fastapi import APIRouter

from app.api.endpoints import auth, comments, posts

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(posts.router)
api_router.include_router(comments.router)
