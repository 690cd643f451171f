"""
Database connection management.

Turns a connection URL (local file path, file: URL, sqlite:// or a remote
postgresql:// URL) plus optional auth token into a pooled SQLAlchemy
AsyncEngine and session factory.

Dependencies: sqlalchemy, aiosqlite, asyncpg, chat_storage.configs
System role: Database connection lifecycle management
"""

import logging
import os
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from chat_storage.configs.database import DatabaseSettings
from chat_storage.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SQLITE_DRIVER = "sqlite+aiosqlite"
POSTGRES_DRIVER = "postgresql+asyncpg"

_MEMORY_URLS = {":memory:", "file::memory:"}


def resolve_async_url(raw_url: str) -> URL:
    """
    Normalize a connection URL to an async SQLAlchemy URL.

    Local forms (bare path, ``file:path``, ``file:///abs/path``, ``:memory:``,
    ``sqlite://``) map to aiosqlite; ``postgresql://`` and ``postgres://`` map
    to asyncpg. A leading ``~`` in a local path is expanded here. URLs that
    already name a driver keep it.

    Args:
        raw_url: Connection URL from settings or the caller

    Returns:
        URL: SQLAlchemy URL with an async driver

    Raises:
        ConfigurationError: If the URL is empty, malformed or uses an
            unsupported scheme
    """
    raw_url = (raw_url or "").strip()
    if not raw_url:
        raise ConfigurationError("Database URL is empty")

    if raw_url in _MEMORY_URLS:
        return URL.create(SQLITE_DRIVER, database=":memory:")

    if raw_url.startswith("file:"):
        path = raw_url[len("file:"):]
        if path.startswith("//"):
            path = path[2:]
        if not path:
            raise ConfigurationError("file: URL has no path", {"url": raw_url})
        return URL.create(SQLITE_DRIVER, database=os.path.expanduser(path))

    if "://" not in raw_url:
        return URL.create(SQLITE_DRIVER, database=os.path.expanduser(raw_url))

    try:
        url = make_url(raw_url)
    except ArgumentError as exc:
        raise ConfigurationError(f"Malformed database URL: {exc}") from exc

    backend = url.get_backend_name()
    if backend == "sqlite" and url.database and url.database != ":memory:":
        # the engine and ensure_local_directory must see the same file
        url = url.set(database=os.path.expanduser(url.database))

    if "+" in url.drivername:
        return url

    if backend == "sqlite":
        return url.set(drivername=SQLITE_DRIVER)
    if backend in ("postgresql", "postgres"):
        return url.set(drivername=POSTGRES_DRIVER)

    raise ConfigurationError(
        f"Unsupported database URL scheme: {url.drivername}",
        {"scheme": url.drivername},
    )


def is_sqlite(url: URL) -> bool:
    """Return True if the URL targets SQLite."""
    return url.get_backend_name() == "sqlite"


def is_memory_database(url: URL) -> bool:
    """Return True if the URL targets an in-memory SQLite database."""
    return is_sqlite(url) and url.database in (None, "", ":memory:")


def ensure_local_directory(url: URL) -> None:
    """
    Create the parent directory of a local SQLite database file.

    No-op for in-memory and remote databases.

    Args:
        url: Resolved database URL
    """
    if not is_sqlite(url) or is_memory_database(url):
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _apply_auth_token(url: URL, auth_token: str | None) -> URL:
    if not auth_token:
        return url
    if is_sqlite(url):
        raise ConfigurationError(
            "Auth token is only supported for remote databases",
            {"url": url.render_as_string(hide_password=True)},
        )
    return url.set(password=auth_token)


def _connect_args(url: URL, settings: DatabaseSettings) -> dict[str, Any]:
    if is_sqlite(url):
        args: dict[str, Any] = {"timeout": settings.connect_timeout}
        if is_memory_database(url):
            args["check_same_thread"] = False
        return args
    if url.drivername == POSTGRES_DRIVER:
        return {"timeout": settings.connect_timeout}
    return {}


def _enable_sqlite_wal(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def create_store_engine(
    url: str | None = None,
    auth_token: str | None = None,
    settings: DatabaseSettings | None = None,
) -> AsyncEngine:
    """
    Create async SQLAlchemy engine with connection pooling.

    In-memory SQLite uses StaticPool so every session sees the same
    database. File and network backends use AsyncAdaptedQueuePool with
    pool_pre_ping=True to detect stale connections early.

    Args:
        url: Connection URL (falls back to settings.url)
        auth_token: Token for remote backends (falls back to settings.auth_token)
        settings: Database settings providing pool sizing and timeouts

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Raises:
        ConfigurationError: If the URL is invalid, the driver is missing, or
            an auth token is given for a local database

    Usage:
        engine = create_store_engine("file:data/conversations.db")
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    """
    settings = settings or DatabaseSettings()
    resolved = resolve_async_url(url or settings.url)
    resolved = _apply_auth_token(resolved, auth_token or settings.token)

    engine_kwargs: dict[str, Any] = {
        "echo": settings.echo_sql,
        "pool_pre_ping": True,
        "connect_args": _connect_args(resolved, settings),
    }
    if is_memory_database(resolved):
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
        )

    try:
        engine = create_async_engine(resolved, **engine_kwargs)
    except (ArgumentError, ImportError) as exc:
        raise ConfigurationError(
            f"Cannot create engine for {resolved.drivername}: {exc}",
            {"driver": resolved.drivername},
        ) from exc

    if is_sqlite(resolved) and not is_memory_database(resolved):
        _enable_sqlite_wal(engine)

    logger.info(
        f"Created engine for {resolved.render_as_string(hide_password=True)}"
    )
    return engine


def get_async_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create async session factory for database operations.

    Sessions use autoflush=False for explicit transaction control and
    expire_on_commit=False so rows stay readable after commit.

    Args:
        engine: Engine returned by create_store_engine

    Returns:
        async_sessionmaker: Async session factory

    Usage:
        SessionFactory = get_async_session_factory(engine)
        async with SessionFactory() as session:
            async with session.begin():
                session.add(obj)
    """
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )
