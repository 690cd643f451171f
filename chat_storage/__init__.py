"""
SQL-backed chat history storage for multi-agent orchestration.

Exports:
  - ConversationStore: Append/fetch ordered message streams per scope
  - ChatHistoryAdapter: Scope-bound adapter speaking LangChain message types
  - ConversationMessage, StoredMessage: Message models
"""

from chat_storage.application.adapters.chat_history_adapter import ChatHistoryAdapter
from chat_storage.application.services.conversation_store import ConversationStore
from chat_storage.models.message import ConversationMessage, StoredMessage

__all__ = [
    "ChatHistoryAdapter",
    "ConversationStore",
    "ConversationMessage",
    "StoredMessage",
]
