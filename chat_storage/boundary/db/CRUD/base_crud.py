"""
Base CRUD operations for SQLAlchemy models.

Provides generic create, count and delete operations that can be
inherited and extended by model-specific CRUD classes.

Dependencies: sqlalchemy
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_storage.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic base class for CRUD operations.

    Provides standard database operations that work with any SQLAlchemy model.
    Subclasses specify the model class and add model-specific queries.
    Callers own the transaction: methods flush but never commit.

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        """
        Initialize CRUD with target model.

        Args:
            model: SQLAlchemy model class for database operations
        """
        self.model = model

    async def create(self, session: AsyncSession, **kwargs) -> ModelT:
        """
        Create a new record in the database.

        Args:
            session: Async database session
            **kwargs: Model field values

        Returns:
            Created model instance

        Raises:
            IntegrityError: If the primary key already exists
        """
        instance = self.model(**kwargs)
        session.add(instance)
        await session.flush()
        return instance

    async def count(self, session: AsyncSession, *criteria: Any) -> int:
        """
        Count records matching the given criteria.

        Args:
            session: Async database session
            *criteria: SQLAlchemy boolean expressions

        Returns:
            Number of matching rows
        """
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def delete_where(self, session: AsyncSession, *criteria: Any) -> int:
        """
        Delete records matching the given criteria.

        Args:
            session: Async database session
            *criteria: SQLAlchemy boolean expressions

        Returns:
            Number of deleted rows
        """
        stmt = delete(self.model).where(*criteria)
        result = await session.execute(stmt)
        return result.rowcount or 0
