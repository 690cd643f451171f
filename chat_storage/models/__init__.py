"""Pydantic message models shared by the store and its adapters."""

from chat_storage.models.message import ConversationMessage, StoredMessage

__all__ = ["ConversationMessage", "StoredMessage"]
