"""
Database boundary layer: ORM model, CRUD operations, and connection management.

Exports:
  - Base: Declarative base
  - ConversationModel: Message row
  - create_store_engine(), get_async_session_factory(): Async connection management
  - resolve_async_url(): URL normalization for local and remote backends
  - create_all_tables(), drop_all_tables(): Schema lifecycle
  - BaseCRUD, ConversationCRUD, conversation_crud: CRUD classes and singleton

Dependencies: sqlalchemy, chat_storage.configs
System role: Database adapter providing persistent storage for conversations
"""

from chat_storage.boundary.db.base import Base
from chat_storage.boundary.db.connection import (
    create_store_engine,
    get_async_session_factory,
    resolve_async_url,
)
from chat_storage.boundary.db.create_tables import create_all_tables, drop_all_tables
from chat_storage.boundary.db.models.conversation_model import ConversationModel
from chat_storage.boundary.db.CRUD import BaseCRUD, ConversationCRUD, conversation_crud

__all__ = [
    "Base",
    "ConversationModel",
    "create_store_engine",
    "get_async_session_factory",
    "resolve_async_url",
    "create_all_tables",
    "drop_all_tables",
    "BaseCRUD",
    "ConversationCRUD",
    "conversation_crud",
]
