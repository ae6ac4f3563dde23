"""Async engine and unit-of-work sessions for the user store."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dwdedupe.config import DatabaseSettings

logger = logging.getLogger(__name__)

# Seconds aiosqlite waits on a locked database before raising "database is locked".
SQLITE_BUSY_TIMEOUT = 30


def _engine_options(settings: DatabaseSettings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.echo}
    if settings.url.startswith("sqlite"):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT,
        }
    else:
        options["pool_pre_ping"] = True
    return options


class Database:
    """Owns the engine; hands out short-lived sessions.

    Every caller (repositories behind routes, the batch worker) opens its own
    session_scope() so no transaction outlives a single load or save.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings
        self._engine = create_async_engine(settings.url, **_engine_options(settings))
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on clean exit and rolls back (then re-raises) on error."""
        async with self._sessions() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()

    async def create_tables(self) -> None:
        """Create missing tables (local SQLite and tests; deployments run Alembic)."""
        from dwdedupe.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("database.tables_created", extra={"url": self.settings.url})

    async def close(self) -> None:
        await self._engine.dispose()
