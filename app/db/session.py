"""Async database handle: engine, sessions and declarative base."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def mask_url(url: str) -> str:
    """Show only host/db part of a database URL."""
    return url.split("@")[-1].split("?")[0] if "@" in url else url.split("?")[0]


class Database:
    """Long-lived store handle shared by every request.

    Created once by the application factory and kept on ``app.state``.
    ``connect()`` builds the engine on first use and returns the same one after that.
    """

    def __init__(self, url: str, *, echo: bool = False, connect_timeout: int = 5):
        self.url = url
        self.echo = echo
        self.connect_timeout = connect_timeout
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> AsyncEngine:
        if self._engine is not None:
            return self._engine
        print(f"[DB] Database URL: ...@{mask_url(self.url)}")
        kwargs: dict = {"echo": self.echo}
        if self.url.startswith("postgresql"):
            kwargs.update(
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
                connect_args={"timeout": self.connect_timeout},
            )
        self._engine = create_async_engine(self.url, **kwargs)
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        return self._engine

    async def ping(self) -> None:
        async with self.connect().connect() as conn:
            await conn.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        self.connect()
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        # Registers every model on Base.metadata
        import app.models  # noqa: F401

        async with self.connect().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
