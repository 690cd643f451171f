"""
Shared test fixtures and configuration for entire test suite.

Provides: Database settings on temp files, initialized conversation stores,
in-memory async sessions for CRUD tests
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from pathlib import Path

import pytest

from chat_storage.configs.database import DatabaseSettings


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Provide a database file path inside the test temp directory."""
    return tmp_path / "conversations.db"


@pytest.fixture
def db_settings(db_path: Path) -> DatabaseSettings:
    """
    Provide database settings pointing at a temp SQLite file.

    Backoff is zero so conflict retries do not slow the suite down.
    """
    return DatabaseSettings(
        url=f"file:{db_path}",
        retry_backoff=0,
        pool_size=5,
        max_overflow=5,
    )


@pytest.fixture
async def store(db_settings: DatabaseSettings):
    """
    Provide an initialized ConversationStore backed by a temp SQLite file.

    Yields:
        ConversationStore: Initialized store, closed after the test
    """
    from chat_storage.application.services.conversation_store import ConversationStore

    conversation_store = ConversationStore(settings=db_settings)
    await conversation_store.initialize()
    yield conversation_store
    await conversation_store.close()


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        AsyncSession: Test database session with cleanup (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
    from sqlalchemy.pool import StaticPool
    from chat_storage.boundary.db.base import Base
    from chat_storage.boundary.db.models.conversation_model import ConversationModel  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def scope() -> tuple[str, str, str]:
    """Provide a sample (user_id, session_id, agent_id) scope."""
    return ("u1", "s1", "a1")
