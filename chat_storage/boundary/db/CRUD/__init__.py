"""
CRUD operations for database models.

Exports base CRUD class and the conversation CRUD implementation
with a pre-instantiated singleton for direct use.

Usage:
    from chat_storage.boundary.db.CRUD import conversation_crud

    next_index = await conversation_crud.next_index(db, "u1", "s1", "a1")
"""

from chat_storage.boundary.db.CRUD.base_crud import BaseCRUD
from chat_storage.boundary.db.CRUD.conversation_crud import ConversationCRUD, conversation_crud

__all__ = [
    "BaseCRUD",
    "ConversationCRUD",
    "conversation_crud",
]
