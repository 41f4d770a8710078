"""User model."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import deferred, relationship

from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)  # stored lower-cased
    # Not loaded by default reads; login undefers it explicitly
    password_hash = deferred(Column(String(255), nullable=False))
    name = Column(String(50), nullable=False)
    google_id = Column(String(255), unique=True, nullable=True)
    profile_picture = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    posts = relationship("Post", back_populates="author", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan")
    likes = relationship("Like", back_populates="user", cascade="all, delete-orphan")
    dislikes = relationship("Dislike", back_populates="user", cascade="all, delete-orphan")
