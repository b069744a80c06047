"""
TextStation Backend — Database Engine and Sessions
===================================================

What:  The async engine, the declarative Base shared by all models, and the
       per-request session dependency.

PostgreSQL stands in for a document store here: style rules, snippets, log
batches and backups each get one table, and their free-form parts (media
type sets, snippet variables, log entries, analysis results) live in JSONB
columns.

Pool sizing comes from settings (DB_POOL_SIZE + DB_MAX_OVERFLOW connections
at most); connections are pinged before use and recycled hourly.
"""

import time
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from textstation.config import settings


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# Services build responses from rows after the flush; keep attributes loaded
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base; Alembic autogenerates from Base.metadata."""
    pass


def now_ms() -> int:
    """Current time in epoch milliseconds, the unit of every stored timestamp."""
    return int(time.time() * 1000)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, committed when the route returns normally.

    Any exception, including errors raised after a successful write, rolls
    the whole request back. Services only flush; this dependency owns the
    transaction.

        @router.post("/get-snippets")
        async def get_snippets(db: AsyncSession = Depends(get_db_session)):
            return await snippet_service.list_snippets(db)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close pooled connections; called from the lifespan on shutdown."""
    await engine.dispose()
