# studio_booking/db/session.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncIterator

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from studio_booking.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops tzinfo on the way in, so values are normalised to UTC before
    binding and tagged as UTC again when read back.
    """

    impl = sa.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Owns the engine and the session factory for the lifetime of the app."""

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def connect(self) -> "Database":
        if self._engine is not None:
            return self
        kwargs: dict = {"echo": self.echo}
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # One shared connection, otherwise every session sees an empty database
            kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        elif not self.url.startswith("sqlite"):
            kwargs["pool_pre_ping"] = True  # avoids stale connection errors
        self._engine = create_async_engine(self.url, **kwargs)
        self._sessionmaker = async_sessionmaker(
            self._engine,
            expire_on_commit=False,  # keep objects usable after commit
            class_=AsyncSession,
        )
        logger.info("database_connected", dialect=self._engine.dialect.name)
        return self

    async def create_all(self) -> None:
        # Models must be imported so their tables are registered on Base.metadata
        import studio_booking.db.base  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(sa.text("SELECT 1"))

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("database_disposed")
        self._engine = None
        self._sessionmaker = None


# FastAPI dependency: yields a session from the app's Database and closes it safely
async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
