"""
Application services.

Exports:
  - ConversationStore: Conversation log store
"""

from chat_storage.application.services.conversation_store import ConversationStore

__all__ = ["ConversationStore"]
