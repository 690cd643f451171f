"""
Chat history adapter.

Binds a ConversationStore to one (user, session, agent) scope and speaks
LangChain message types, so agent code can hand BaseMessage objects in and
get them back out.

Dependencies: langchain_core, chat_storage.application.services
System role: Chat history business logic adapter
"""

import logging
from typing import Any, List

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    ChatMessage,
    HumanMessage,
    SystemMessage,
)

from chat_storage.application.services.conversation_store import ConversationStore
from chat_storage.models.message import ConversationMessage, StoredMessage

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"

logger = logging.getLogger(__name__)

_ROLE_ALIASES = {
    "user": USER_ROLE,
    "human": USER_ROLE,
    "assistant": ASSISTANT_ROLE,
    "ai": ASSISTANT_ROLE,
    "system": SYSTEM_ROLE,
}


def normalize_role(role: str) -> str:
    """Map LangChain and OpenAI role spellings onto stored role names."""
    return _ROLE_ALIASES.get(role.lower(), role)


def _message_content(content: Any) -> str | list:
    # BaseMessage content must be a string or a list of strings/dicts
    if isinstance(content, (str, list)):
        return content
    if isinstance(content, dict):
        return [content]
    return str(content)


def to_langchain_message(message: StoredMessage) -> BaseMessage:
    """
    Convert a stored record to the matching LangChain message type.

    Args:
        message: Stored message record

    Returns:
        HumanMessage, AIMessage, SystemMessage, or ChatMessage for other roles
    """
    content = _message_content(message.content)
    role = normalize_role(message.role)
    if role == USER_ROLE:
        return HumanMessage(content=content)
    if role == ASSISTANT_ROLE:
        return AIMessage(content=content)
    if role == SYSTEM_ROLE:
        return SystemMessage(content=content)
    return ChatMessage(role=message.role, content=content)


def from_langchain_message(message: BaseMessage) -> ConversationMessage:
    """
    Convert a LangChain message to a ConversationMessage for storage.

    Only the role and content are kept. Tool wiring such as a ToolMessage's
    ``tool_call_id`` or an AIMessage's ``tool_calls`` has no column in the
    conversation log and is dropped with a warning; a ToolMessage comes back
    from storage as a ChatMessage with role ``tool``.
    """
    if isinstance(message, ChatMessage):
        role = message.role
    else:
        role = normalize_role(message.type)

    dropped = []
    if getattr(message, "tool_call_id", None):
        dropped.append("tool_call_id")
    if getattr(message, "tool_calls", None):
        dropped.append("tool_calls")
    if dropped:
        logger.warning(
            f"Dropping {', '.join(dropped)} from {type(message).__name__} before storage"
        )
    return ConversationMessage(role=role, content=message.content)


class ChatHistoryAdapter:
    """
    High-level adapter for chat history operations.

    Provides business logic layer on top of ConversationStore for a single
    scope. Simplifies adding messages by role and retrieving history as
    LangChain messages or plain dicts.
    """

    def __init__(
        self,
        store: ConversationStore,
        user_id: str,
        session_id: str,
        agent_id: str,
    ) -> None:
        """
        Initialize chat history adapter.

        Args:
            store: Initialized conversation store
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
        """
        self.store = store
        self.user_id = user_id
        self.session_id = session_id
        self.agent_id = agent_id

    async def add_message(self, role: str, content: Any) -> StoredMessage:
        """
        Add message to chat history by role.

        Args:
            role: Message role ("user", "human", "assistant", "ai", "system" or custom)
            content: Message content

        Returns:
            StoredMessage: The persisted record
        """
        return await self.store.append(
            self.user_id,
            self.session_id,
            self.agent_id,
            normalize_role(role),
            content,
        )

    async def add_user_message(self, content: Any) -> StoredMessage:
        """Add user message to chat history."""
        return await self.add_message(USER_ROLE, content)

    async def add_ai_message(self, content: Any) -> StoredMessage:
        """Add assistant message to chat history."""
        return await self.add_message(ASSISTANT_ROLE, content)

    async def add_messages(self, messages: List[BaseMessage]) -> List[StoredMessage]:
        """
        Add LangChain messages in one batch.

        Args:
            messages: Messages in conversation order

        Returns:
            list[StoredMessage]: Persisted records
        """
        return await self.store.append_many(
            self.user_id,
            self.session_id,
            self.agent_id,
            [from_langchain_message(message) for message in messages],
        )

    async def get_messages(self, limit: int | None = None) -> List[BaseMessage]:
        """
        Get chat messages for the scope.

        Args:
            limit: Maximum number of recent messages to return (None = store default)

        Returns:
            List of BaseMessage objects, oldest first
        """
        stored = await self.store.fetch(
            self.user_id, self.session_id, self.agent_id, limit
        )
        return [to_langchain_message(message) for message in stored]

    async def get_messages_as_dicts(
        self,
        limit: int | None = None,
    ) -> List[dict]:
        """
        Get chat messages as dictionaries.

        Args:
            limit: Maximum number of recent messages to return (None = store default)

        Returns:
            List of message dicts with keys: role, content, timestamp
        """
        stored = await self.store.fetch(
            self.user_id, self.session_id, self.agent_id, limit
        )
        return [
            {
                "role": message.role,
                "content": message.content,
                "timestamp": message.timestamp,
            }
            for message in stored
        ]

    async def get_session_messages(self, limit: int | None = None) -> List[BaseMessage]:
        """
        Get every agent's messages in the session as LangChain messages.

        Assistant text is prefixed with ``[agent_id]`` so a model reading the
        merged history can tell the agents apart.

        Args:
            limit: Maximum number of recent messages across agents

        Returns:
            List of BaseMessage objects ordered by timestamp
        """
        stored = await self.store.fetch_all(self.user_id, self.session_id, limit)
        messages = []
        for message in stored:
            converted = to_langchain_message(message)
            if isinstance(converted, AIMessage) and isinstance(converted.content, str):
                converted = AIMessage(content=f"[{message.agent_id}] {converted.content}")
            messages.append(converted)
        return messages

    async def clear(self) -> int:
        """
        Clear all chat history for the scope.

        Returns:
            int: Number of deleted messages
        """
        return await self.store.clear(self.user_id, self.session_id, self.agent_id)
