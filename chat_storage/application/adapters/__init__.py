"""Adapters exposing the conversation store through framework message types."""

from chat_storage.application.adapters.chat_history_adapter import ChatHistoryAdapter

__all__ = ["ChatHistoryAdapter"]
