"""
Conversation ORM model.

One row per message. The composite primary key orders messages inside a
(user, session, agent) scope; the lookup index serves scope reads.

Dependencies: sqlalchemy, chat_storage.boundary.db.base
System role: Message persistence for multi-agent conversations
"""

from sqlalchemy import BigInteger, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from chat_storage.boundary.db.base import Base


class ConversationModel(Base):
    """
    Conversation message ORM model.

    Attributes:
        user_id: Opaque user identifier
        session_id: Conversation within a user
        agent_id: Participating agent within a session
        message_index: Per-scope sequence number defining read order
        role: Sender classification
        content: JSON-serialized payload
        timestamp: Epoch milliseconds set at write time
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index("idx_conversations_lookup", "user_id", "session_id", "agent_id"),
    )

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    agent_id: Mapped[str] = mapped_column(Text, primary_key=True)
    message_index: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # BIGINT outside SQLite so millisecond epochs fit
    timestamp: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        nullable=False,
    )
