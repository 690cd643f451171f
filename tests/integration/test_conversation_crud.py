"""
Test suite for ConversationCRUD and BaseCRUD database operations.

Tests next-index assignment, ordered scope reads with truncation,
session-wide merges, session listing, counts and deletes against an
in-memory SQLite database, plus BaseCRUD call sequencing with a mocked
session.

System role: Verification of message persistence layer
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_storage.boundary.db.CRUD.base_crud import BaseCRUD
from chat_storage.boundary.db.CRUD.conversation_crud import ConversationCRUD
from chat_storage.boundary.db.models.conversation_model import ConversationModel


@pytest.fixture
def conversation_crud() -> ConversationCRUD:
    """Provide ConversationCRUD instance for testing."""
    return ConversationCRUD()


async def _add(
    crud: ConversationCRUD,
    db: AsyncSession,
    agent_id: str,
    index: int,
    timestamp: int,
    session_id: str = "s1",
    user_id: str = "u1",
) -> ConversationModel:
    return await crud.create(
        db,
        user_id=user_id,
        session_id=session_id,
        agent_id=agent_id,
        message_index=index,
        role="user",
        content=f'"{agent_id}-{index}"',
        timestamp=timestamp,
    )


class TestBaseCRUDCreate:
    """Test suite for BaseCRUD.create() method."""

    @pytest.mark.asyncio
    async def test_create_should_add_instance_and_flush(self) -> None:
        """Test create adds the instance to the session and flushes."""
        # Arrange
        crud = BaseCRUD(ConversationModel)
        mock_session = AsyncMock(spec=AsyncSession)
        mock_session.add = MagicMock()

        # Act
        instance = await crud.create(
            mock_session,
            user_id="u1",
            session_id="s1",
            agent_id="a1",
            message_index=0,
            role="user",
            content='"hi"',
            timestamp=1,
        )

        # Assert
        mock_session.add.assert_called_once_with(instance)
        mock_session.flush.assert_awaited_once()
        assert instance.message_index == 0


class TestConversationCRUDNextIndex:
    """Test suite for ConversationCRUD.next_index()."""

    @pytest.mark.asyncio
    async def test_next_index_should_be_zero_for_empty_scope(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test an empty scope starts at index 0."""
        assert await conversation_crud.next_index(test_async_db, "u1", "s1", "a1") == 0

    @pytest.mark.asyncio
    async def test_next_index_should_follow_highest_index(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test next index is max + 1 and ignores other scopes."""
        await _add(conversation_crud, test_async_db, "a1", 0, 10)
        await _add(conversation_crud, test_async_db, "a1", 4, 20)
        await _add(conversation_crud, test_async_db, "a2", 9, 30)

        assert await conversation_crud.next_index(test_async_db, "u1", "s1", "a1") == 5


class TestConversationCRUDReads:
    """Test suite for scope and session reads."""

    @pytest.mark.asyncio
    async def test_get_scope_messages_should_order_ascending(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test rows come back ordered by message_index regardless of insert order."""
        for index in (2, 0, 1):
            await _add(conversation_crud, test_async_db, "a1", index, 100 + index)

        rows = await conversation_crud.get_scope_messages(test_async_db, "u1", "s1", "a1")

        assert [row.message_index for row in rows] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_get_scope_messages_with_limit_should_keep_latest(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test a limit keeps the highest indices, still ascending."""
        for index in range(5):
            await _add(conversation_crud, test_async_db, "a1", index, index)

        rows = await conversation_crud.get_scope_messages(
            test_async_db, "u1", "s1", "a1", limit=3
        )

        assert [row.message_index for row in rows] == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_get_session_messages_should_merge_by_timestamp(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test session reads interleave agents and break ties by agent id."""
        await _add(conversation_crud, test_async_db, "b", 0, 100)
        await _add(conversation_crud, test_async_db, "a", 0, 100)
        await _add(conversation_crud, test_async_db, "a", 1, 50)

        rows = await conversation_crud.get_session_messages(test_async_db, "u1", "s1")

        assert [(row.agent_id, row.message_index) for row in rows] == [
            ("a", 1),
            ("a", 0),
            ("b", 0),
        ]

    @pytest.mark.asyncio
    async def test_get_session_ids_should_be_distinct(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test each session id appears once per user."""
        await _add(conversation_crud, test_async_db, "a1", 0, 1, session_id="s2")
        await _add(conversation_crud, test_async_db, "a2", 0, 1, session_id="s2")
        await _add(conversation_crud, test_async_db, "a1", 0, 1, session_id="s1")
        await _add(conversation_crud, test_async_db, "a1", 0, 1, user_id="u2")

        assert list(await conversation_crud.get_session_ids(test_async_db, "u1")) == ["s1", "s2"]


class TestConversationCRUDWrites:
    """Test suite for uniqueness, counts and deletes."""

    @pytest.mark.asyncio
    async def test_create_duplicate_key_should_raise_integrity_error(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test the composite primary key rejects a repeated index."""
        await _add(conversation_crud, test_async_db, "a1", 0, 1)
        test_async_db.expunge_all()

        with pytest.raises(IntegrityError):
            await _add(conversation_crud, test_async_db, "a1", 0, 2)

    @pytest.mark.asyncio
    async def test_count_scope_should_count_only_scope(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test counts are per scope."""
        await _add(conversation_crud, test_async_db, "a1", 0, 1)
        await _add(conversation_crud, test_async_db, "a1", 1, 1)
        await _add(conversation_crud, test_async_db, "a2", 0, 1)

        assert await conversation_crud.count_scope(test_async_db, "u1", "s1", "a1") == 2

    @pytest.mark.asyncio
    async def test_delete_scope_without_agent_should_delete_session(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test omitting agent_id deletes every agent in the session."""
        await _add(conversation_crud, test_async_db, "a1", 0, 1)
        await _add(conversation_crud, test_async_db, "a2", 0, 1)
        await _add(conversation_crud, test_async_db, "a1", 0, 1, session_id="s2")

        deleted = await conversation_crud.delete_scope(test_async_db, "u1", "s1")

        assert deleted == 2
        assert await conversation_crud.count(test_async_db) == 1

    @pytest.mark.asyncio
    async def test_delete_older_than_should_use_strict_cutoff(
        self, conversation_crud: ConversationCRUD, test_async_db: AsyncSession
    ) -> None:
        """Test rows exactly at the cutoff are kept."""
        await _add(conversation_crud, test_async_db, "a1", 0, 99)
        await _add(conversation_crud, test_async_db, "a1", 1, 100)

        deleted = await conversation_crud.delete_older_than(test_async_db, 100)

        assert deleted == 1
        assert await conversation_crud.count(test_async_db) == 1
