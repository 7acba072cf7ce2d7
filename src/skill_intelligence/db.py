"""Local SQLite store.

Holds the saved service configuration and the validation history. The
file lives at ~/.skill-intelligence/data.db unless DATA_DIR points
elsewhere; the engine is created on first use and bound to that path
until close_db().
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".skill-intelligence"
DB_FILENAME = "data.db"

# WAL lets tool calls read history while another call appends
SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_db_path() -> Path:
    """Database file path. The data directory is created if missing."""
    data_dir = Path(os.environ.get("DATA_DIR") or DEFAULT_DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / DB_FILENAME


def _apply_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        path = get_db_path()
        _engine = create_async_engine(f"sqlite+aiosqlite:///{path}", echo=False)
        event.listen(_engine.sync_engine, "connect", _apply_pragmas)
        logger.debug("Opened SQLite store at %s", path)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session that commits when the block succeeds and rolls back otherwise."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables."""
    from .sqlmodels import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database ready at %s", get_db_path())


async def close_db() -> None:
    """Dispose of the engine; the next access reopens it at the current DATA_DIR."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
