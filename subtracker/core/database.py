from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    pragmas = (
        text("PRAGMA journal_mode=WAL"),
        text("PRAGMA synchronous=NORMAL"),
        text("PRAGMA foreign_keys=ON"),
        text("PRAGMA busy_timeout=5000"),
    )

    for pragma in pragmas:
        cursor.execute(pragma.text)
        if pragma.text.startswith("PRAGMA journal_mode"):
            cursor.fetchone()
    cursor.close()


class Database:
    """Owns the async engine and session factory for one process.

    Constructed explicitly and handed to whoever needs storage; nothing is
    connected until :meth:`connect` runs.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        if self._engine is not None:
            return

        engine = create_async_engine(self.url, echo=self.echo, future=True)
        if make_url(self.url).get_backend_name() == "sqlite":
            event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create all tables known to the model metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting database sessions."""
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()
