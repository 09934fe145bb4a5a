# app/db.py
from __future__ import annotations

import pathlib
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger("uvicorn.error")

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    pass


def _ensure_sqlite_dir(dsn: str) -> None:
    # Handle sqlite+aiosqlite:///./data/rentalert.db
    # or sqlite+aiosqlite:////code/data/rentalert.db
    if not dsn.startswith("sqlite"):
        return
    try:
        sep = "///" if "///" in dsn else "//"
        path_part = dsn.split(sep, 1)[1] if sep in dsn else ""
        if path_part and path_part != ":memory:":
            path = pathlib.Path(path_part).resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.warning("[DB] Could not ensure SQLite directory exists: %s", e)


def make_engine(dsn: str) -> AsyncEngine:
    _ensure_sqlite_dir(dsn)
    return create_async_engine(dsn, echo=False, pool_pre_ping=True)


def get_engine() -> AsyncEngine:
    """
    Lazily create a global AsyncEngine and sessionmaker.
    """
    global _engine, _sessionmaker
    if _engine is None:
        dsn = settings.DATABASE_URL
        _engine = make_engine(dsn)
        _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
        logger.info("[DB] engine initialized for %s", dsn)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Get the global async session factory.
    """
    global _sessionmaker
    if _sessionmaker is None:
        get_engine()
    # _sessionmaker will be set by get_engine()
    return _sessionmaker  # type: ignore[return-value]


async def create_tables(engine: AsyncEngine) -> None:
    # import models so they register on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """
    Ensure the engine is created, reachable, and that all tables exist.
    """
    eng = get_engine()
    try:
        await create_tables(eng)
    except Exception as e:
        logger.error("[DB] initial connect failed: %s", e)
        raise


async def dispose_db() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None
