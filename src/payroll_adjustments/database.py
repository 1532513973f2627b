"""Database connection and session management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncGenerator
from uuid import UUID

from sqlalchemy import make_url, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_adjustments.config import Settings, get_settings
from payroll_adjustments.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine on the configured backend.

    SQLite keeps the pool aiosqlite picks for it; server databases get the
    configured pool size.
    """
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if make_url(settings.database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Return the process-wide engine and session factory, creating them once."""
    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **engine_options(settings))
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
        logger.info("Database engine created for %s", _engine.url.render_as_string())
    return _engine, _session_factory


async def create_schema() -> None:
    """Create missing tables on the configured database."""
    engine, _ = init_db()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Dispose the global engine, if one was created."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session that commits on success and rolls back on error."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def try_config_lock(session: AsyncSession, config_id: UUID) -> bool:
    """Take a transaction-scoped advisory lock for a retro config.

    The lock is released automatically at commit/rollback. Returns True when
    acquired (always True on dialects without advisory locks).
    """
    if session.bind is None or session.bind.dialect.name != "postgresql":
        return True
    result = await session.execute(
        text("SELECT pg_try_advisory_xact_lock(hashtext(:config_id))"),
        {"config_id": str(config_id)},
    )
    return bool(result.scalar())
