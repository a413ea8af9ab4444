"""Database models and helpers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Setting(SQLModel, table=True):
    """Namespaced key-value record (address names live here)."""

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=_utcnow)


class Database:
    """Lightweight async database wrapper."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    def connect(self) -> None:
        """Initialise engine and sessionmaker."""
        if self._engine:
            return

        url = make_url(self.url)
        if url.get_backend_name() == "sqlite":
            database = url.database
            if database and database != ":memory:":
                Path(database).expanduser().resolve().parent.mkdir(
                    parents=True, exist_ok=True
                )

        self._engine = create_async_engine(self.url, echo=False)
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_models(self) -> None:
        """Create tables if they do not exist."""
        if not self._engine:
            raise RuntimeError("Database engine is not initialised")

        async with self._engine.begin() as conn:  # pragma: no cover - DDL
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Return an async session context."""
        if not self._session_maker:
            raise RuntimeError("Database session maker is not initialised")

        async with self._session_maker() as session:
            yield session


__all__ = ["Database", "Setting"]
