"""
Database engine and session management.

Request handlers get a session per request from get_session(); the deadline
sweep and scripts open their own with get_session_context(). Both commit on
success and roll back on any error; pushes queued by committed work go out
afterwards.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.notify import deliver_committed

settings = get_settings()
log = structlog.get_logger()


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for server databases; SQLite (tests, local runs) takes none."""
    options: dict[str, Any] = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=settings.db_pool_size)
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables. Local development only; deployments run the Alembic revisions."""
    import app.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def database_available(bind: Optional[AsyncEngine] = None) -> bool:
    """Readiness probe helper; never raises."""
    try:
        async with (bind or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        log.warning("database.unreachable", exc_info=True)
        return False


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await deliver_committed(session)


@asynccontextmanager
async def get_session_context(factory=None):
    """Session for work outside a request: the sweep, scripts, tests."""
    async with (factory or async_session_factory)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await deliver_committed(session)
