"""Chat message entity and the role vocabulary stored with it."""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.shared.entities.base import BaseEntity

if TYPE_CHECKING:
    from api.features.conversation.entities.chat_session import ChatSession


class MessageRole(str, Enum):
    """Roles persisted in a transcript. System prompts are never stored."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseEntity):
    """One entry of a session's append-only transcript."""

    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_chat_message_session_sequence"),
        Index("ix_chat_message_session_order", "session_id", "created_at", "sequence"),
    )

    session_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("chat_session.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Per-session insertion counter; breaks ties between equal created_at values
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    # Time of the insert itself, not of the enclosing transaction
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.clock_timestamp()
    )

    session: Mapped["ChatSession"] = relationship(back_populates="messages")
