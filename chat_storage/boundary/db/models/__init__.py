"""ORM models registered with Base.metadata."""

from chat_storage.boundary.db.models.conversation_model import ConversationModel

__all__ = ["ConversationModel"]
