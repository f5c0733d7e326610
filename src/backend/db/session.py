"""
Async SQLAlchemy engine and session management.

The production store is PostgreSQL (asyncpg). DATABASE_URL may point at
another async driver, e.g. sqlite+aiosqlite for local runs and tests.
"""

import logging
from contextlib import contextmanager
from typing import AsyncGenerator, Iterator

from sqlalchemy.exc import (
    DBAPIError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import settings
from core.exceptions import StorageUnavailable
from db.base import Base

logger = logging.getLogger(__name__)

# Global engine/session factory (lazy-initialized)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, ConnectionError)


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    kwargs: dict = {"echo": echo}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_pre_ping=True,
            pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        )
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    """Get or create the application engine."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url, echo=settings.DB_ECHO)
        logger.info(f"Initialized database engine ({_engine.url.get_backend_name()})")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the application session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register on the metadata
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Initialize the database connection (and schema when enabled)."""
    engine = get_engine()
    if settings.DB_CREATE_TABLES:
        await create_tables(engine)
        logger.info("Database schema ensured")


async def close_db() -> None:
    """Dispose the engine. Called during application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Closed database engine")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a session per request.

    Write endpoints commit explicitly; anything left uncommitted is rolled
    back when the session closes.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def is_transient_error(exc: BaseException) -> bool:
    """Check whether an exception is an infrastructure failure worth retrying."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, TRANSIENT_ERRORS)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """
    Report transient storage failures as StorageUnavailable.

    Domain errors and programming errors propagate unchanged.
    """
    try:
        yield
    except Exception as e:
        if not is_transient_error(e):
            raise
        logger.warning(f"Storage unavailable during {operation}: {type(e).__name__}: {e}")
        raise StorageUnavailable() from e
