"""
Conversation message models.

ConversationMessage is what callers append; StoredMessage is the full
record returned by the store with content already deserialized.

Dependencies: pydantic
System role: Message contracts between orchestrator and store
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConversationMessage(BaseModel):
    """A message to append to a conversation scope."""

    role: str = Field(min_length=1, description="Sender classification, e.g. 'user' or 'assistant'")
    content: Any = Field(description="JSON-representable payload")
    timestamp: int | None = Field(
        default=None,
        ge=0,
        description="Epoch milliseconds; set at write time when omitted",
    )


class StoredMessage(BaseModel):
    """A persisted message record."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    session_id: str
    agent_id: str
    message_index: int = Field(ge=0)
    role: str
    content: Any
    timestamp: int

    @property
    def scope(self) -> tuple[str, str, str]:
        """(user_id, session_id, agent_id) triple this message belongs to."""
        return (self.user_id, self.session_id, self.agent_id)
