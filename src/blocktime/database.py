"""Async SQLAlchemy engine and session management.

The :class:`Database` handle is opened once per process (application
lifespan or worker startup) and passed to whoever needs sessions.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class Database:
    """Owns the async engine and session factory for one process."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def open(self) -> None:
        """Create the engine and session factory."""
        kwargs: dict[str, object] = {"pool_pre_ping": True, "echo": False}
        if self.url.startswith("postgresql"):
            kwargs.update(pool_size=10, max_overflow=10, connect_args={"statement_cache_size": 0})
        self._engine = create_async_engine(self.url, **kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Dispose of the engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "Database not opened. Call Database.open() first."
            raise RuntimeError(msg)
        return self._engine

    def session(self) -> AsyncSession:
        """Return a new session; use as an async context manager."""
        if self._session_factory is None:
            msg = "Database not opened. Call Database.open() first."
            raise RuntimeError(msg)
        return self._session_factory()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    db: Database = request.app.state.db
    async with db.session() as session:
        yield session
