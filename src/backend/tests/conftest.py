"""
Pytest fixtures for CivicVote backend tests.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_CREATE_TABLES", "false")

from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

ORGANIZER_ID = "organizer-test-1"


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
async def db_engine(tmp_path: Any, request: pytest.FixtureRequest) -> AsyncGenerator[AsyncEngine, None]:
    """
    File-backed SQLite database per test so separate sessions see each other's commits.

    Tests marked ``foreign_keys`` get SQLite foreign key enforcement, which
    is off by default, so ON DELETE rules behave as they do on PostgreSQL.
    """
    from db.session import build_engine, create_tables

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'civicvote.db'}")
    if request.node.get_closest_marker("foreign_keys"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from db.session import build_session_factory

    return build_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def app(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the per-test database."""
    from db.session import get_db
    from main import app as fastapi_app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def organizer_token() -> str:
    from core.security import create_access_token

    return create_access_token({"sub": ORGANIZER_ID, "role": "organizer"})


@pytest.fixture
def organizer_headers(organizer_token: str) -> dict[str, str]:
    """Authorization headers for organizer routes."""
    return {
        "Authorization": f"Bearer {organizer_token}",
        "Content-Type": "application/json",
    }


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_sms() -> MagicMock:
    sms = MagicMock()
    sms.send_verification_code = AsyncMock(return_value=True)
    return sms


@pytest.fixture
def mock_email() -> MagicMock:
    email = MagicMock()
    email.send_verification_code = AsyncMock(return_value=True)
    return email


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def create_verified_voter(db_session: AsyncSession) -> Callable[..., Awaitable[Any]]:
    """Factory for verified voters."""
    from services.identity_registry import IdentityRegistry

    async def _create(national_id: str = "123456789012", age: int = 30) -> Any:
        registry = IdentityRegistry(db_session)
        voter = await registry.find_or_create(national_id=national_id, age=age)
        return await registry.mark_verified(voter)

    return _create


@pytest.fixture
def create_election(db_session: AsyncSession, now: datetime) -> Callable[..., Awaitable[Any]]:
    """Factory for elections; active and open by default."""
    from services.election_catalog import ElectionCatalog

    async def _create(
        start: timedelta = timedelta(hours=-1),
        end: timedelta = timedelta(hours=1),
        candidates: list[dict[str, str]] | None = None,
        status: str | None = "active",
        name: str = "City Council 2026",
    ) -> Any:
        return await ElectionCatalog(db_session).create(
            name=name,
            description="Seat for ward 4",
            start_time=now + start,
            end_time=now + end,
            candidates=candidates
            or [
                {"name": "Alice Moreau", "party": "Greens"},
                {"name": "Bram Okafor", "party": "Civic Union"},
            ],
            created_by=ORGANIZER_ID,
            status=status,
            now=now,
        )

    return _create
