"""
Database table creation script.

Creates the conversations table and its lookup index using SQLAlchemy
metadata.

Dependencies: sqlalchemy, chat_storage.configs
System role: Database schema initialization

Usage:
    python -m chat_storage.boundary.db.create_tables
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from chat_storage.boundary.db.base import Base
from chat_storage.boundary.db.connection import create_store_engine

# Import all models to register them with Base.metadata
from chat_storage.boundary.db.models.conversation_model import ConversationModel  # noqa: F401
from chat_storage.configs import get_settings
from chat_storage.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def create_all_tables(engine: AsyncEngine) -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: create_all checks for each table and index first, so it is
    safe to run multiple times. Existing tables remain unchanged.

    Args:
        engine: Target async engine

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Conversation tables ready")


async def drop_all_tables(engine: AsyncEngine) -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.

    Args:
        engine: Target async engine
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("All tables dropped")


async def _main() -> None:
    settings = get_settings()
    configure_logging(settings)
    engine = create_store_engine(settings=settings.database)
    try:
        await create_all_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(_main())
