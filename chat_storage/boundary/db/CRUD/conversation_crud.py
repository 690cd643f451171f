"""
Conversation CRUD operations.

Scope-aware queries over the conversations table: next index assignment,
ordered reads with most-recent truncation, session listing and deletes.

Dependencies: sqlalchemy, chat_storage.boundary.db.models
System role: Message persistence operations
"""

from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_storage.boundary.db.CRUD.base_crud import BaseCRUD
from chat_storage.boundary.db.models.conversation_model import ConversationModel


class ConversationCRUD(BaseCRUD[ConversationModel]):
    """
    CRUD operations for ConversationModel.

    Extends BaseCRUD with queries keyed on the
    (user_id, session_id, agent_id) scope.
    """

    def __init__(self) -> None:
        """Initialize ConversationCRUD with ConversationModel."""
        super().__init__(ConversationModel)

    @staticmethod
    def scope_criteria(
        user_id: str,
        session_id: str,
        agent_id: str | None = None,
    ) -> list[Any]:
        """
        Build WHERE criteria for a scope, or a whole session when agent_id is None.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent (None = every agent in the session)

        Returns:
            List of SQLAlchemy boolean expressions
        """
        criteria = [
            ConversationModel.user_id == user_id,
            ConversationModel.session_id == session_id,
        ]
        if agent_id is not None:
            criteria.append(ConversationModel.agent_id == agent_id)
        return criteria

    async def next_index(
        self,
        session: AsyncSession,
        user_id: str,
        session_id: str,
        agent_id: str,
    ) -> int:
        """
        Compute the next message index for a scope.

        Args:
            session: Async database session
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent

        Returns:
            0 for an empty scope, otherwise the highest index plus one
        """
        stmt = select(func.max(ConversationModel.message_index)).where(
            *self.scope_criteria(user_id, session_id, agent_id)
        )
        result = await session.execute(stmt)
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def get_scope_messages(
        self,
        session: AsyncSession,
        user_id: str,
        session_id: str,
        agent_id: str,
        limit: int | None = None,
    ) -> list[ConversationModel]:
        """
        Retrieve a scope's messages ordered by ascending message_index.

        Args:
            session: Async database session
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
            limit: Keep only the most recent N messages (None for all)

        Returns:
            Model instances, oldest first
        """
        criteria = self.scope_criteria(user_id, session_id, agent_id)
        if limit is None:
            stmt = (
                select(ConversationModel)
                .where(*criteria)
                .order_by(ConversationModel.message_index.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

        stmt = (
            select(ConversationModel)
            .where(*criteria)
            .order_by(ConversationModel.message_index.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def get_session_messages(
        self,
        session: AsyncSession,
        user_id: str,
        session_id: str,
        limit: int | None = None,
    ) -> list[ConversationModel]:
        """
        Retrieve every agent's messages in a session, merged chronologically.

        Ties on timestamp are broken by agent_id, then message_index.

        Args:
            session: Async database session
            user_id: Session owner
            session_id: Session identifier
            limit: Keep only the most recent N messages (None for all)

        Returns:
            Model instances, oldest first
        """
        criteria = self.scope_criteria(user_id, session_id)
        ordering = (
            ConversationModel.timestamp,
            ConversationModel.agent_id,
            ConversationModel.message_index,
        )
        if limit is None:
            stmt = select(ConversationModel).where(*criteria).order_by(*ordering)
            result = await session.execute(stmt)
            return list(result.scalars().all())

        stmt = (
            select(ConversationModel)
            .where(*criteria)
            .order_by(*(column.desc() for column in ordering))
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def get_session_ids(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> Sequence[str]:
        """
        List distinct session ids recorded for a user.

        Args:
            session: Async database session
            user_id: User identifier

        Returns:
            Session ids in ascending order
        """
        stmt = (
            select(ConversationModel.session_id)
            .where(ConversationModel.user_id == user_id)
            .distinct()
            .order_by(ConversationModel.session_id)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_scope(
        self,
        session: AsyncSession,
        user_id: str,
        session_id: str,
        agent_id: str,
    ) -> int:
        """Count messages stored for a scope."""
        return await self.count(
            session, *self.scope_criteria(user_id, session_id, agent_id)
        )

    async def delete_scope(
        self,
        session: AsyncSession,
        user_id: str,
        session_id: str,
        agent_id: str | None = None,
    ) -> int:
        """
        Delete a scope, or a whole session when agent_id is None.

        Returns:
            Number of deleted rows
        """
        return await self.delete_where(
            session, *self.scope_criteria(user_id, session_id, agent_id)
        )

    async def delete_older_than(self, session: AsyncSession, cutoff: int) -> int:
        """
        Delete messages with a timestamp strictly before cutoff.

        Args:
            session: Async database session
            cutoff: Epoch milliseconds

        Returns:
            Number of deleted rows
        """
        return await self.delete_where(session, ConversationModel.timestamp < cutoff)


conversation_crud = ConversationCRUD()
