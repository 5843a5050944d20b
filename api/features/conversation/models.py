"""Domain models for the Conversation feature."""
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from api.features.conversation.entities import ChatMessage, ChatSession, MessageRole


class SessionModel(BaseModel):
    """Domain model for a chat session."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Session identifier")
    owner_id: int = Field(description="Identity of the creating user")
    title: str = Field(description="Display title")
    last_activity: datetime = Field(description="Time of the last appended message")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: ChatSession) -> "SessionModel":
        return cls(
            id=str(entity.id),
            owner_id=entity.owner_id,
            title=entity.title,
            last_activity=entity.last_activity,
            created_at=entity.created_at,
        )


class MessageModel(BaseModel):
    """Domain model for one transcript entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Message identifier")
    session_id: str = Field(description="Owning session identifier")
    role: MessageRole = Field(description="Message role: user or assistant")
    content: str = Field(description="Message text")
    sequence: int = Field(description="Per-session insertion order")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: ChatMessage) -> "MessageModel":
        return cls(
            id=str(entity.id),
            session_id=str(entity.session_id),
            role=MessageRole(entity.role),
            content=entity.content,
            sequence=entity.sequence,
            created_at=entity.created_at,
        )


class Conversation(BaseModel):
    """A session together with its ordered transcript."""

    session: SessionModel
    messages: List[MessageModel] = Field(default_factory=list)

    @property
    def last_message(self) -> MessageModel | None:
        return self.messages[-1] if self.messages else None

    def has_orphan(self) -> bool:
        """True when the transcript ends with an unanswered user message."""
        last = self.last_message
        return last is not None and last.role == MessageRole.USER
