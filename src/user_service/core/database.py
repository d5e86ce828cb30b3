"""
Database engine and session management.

The API and the change-feed relay share one engine: request handlers write
users and journal rows, the relay's cursors read the journal concurrently.
"""
from typing import Any, AsyncGenerator, Dict
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from .config import settings, check_required_settings
from ..models import Base

# Seconds SQLite waits on a locked database before failing a statement
SQLITE_BUSY_TIMEOUT = 15


def engine_options(database_url: str, pooled: bool) -> Dict[str, Any]:
    """Engine keyword arguments for the given database URL."""
    options: Dict[str, Any] = {"echo": False}
    if make_url(database_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
    if not pooled:
        options["poolclass"] = NullPool
    return options


def create_db_engine() -> AsyncEngine:
    """
    Create the async engine.

    SQLite (aiosqlite) locally, PostgreSQL (asyncpg) in deployed environments,
    where connections are not pooled in-process.
    """
    if not settings.IS_LOCAL_TESTING:
        check_required_settings(["DATABASE_URL"])

    return create_async_engine(
        settings.DATABASE_URL,
        **engine_options(settings.DATABASE_URL, pooled=settings.IS_LOCAL_TESTING),
    )


engine = create_db_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Anything left uncommitted is committed when the request succeeds and
    rolled back when it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables. Local development and tests only; deployments run Alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """Drop all tables. Tests only."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
