"""DTOs for the Conversation feature."""
from datetime import datetime
from typing import List

from pydantic import Field

from api.features.conversation.entities import MessageRole
from api.features.conversation.models import Conversation, MessageModel, SessionModel
from api.shared.dtos import BaseDTO


class CreateChatRequest(BaseDTO):
    """Request to open a chat with its first message."""

    initial_message: str = Field(min_length=1, description="First user message")


class SendMessageRequest(BaseDTO):
    """Request to add a user message to a chat."""

    message: str = Field(min_length=1, description="User message text")


class RenameChatRequest(BaseDTO):
    """Request to change a chat's title."""

    title: str = Field(min_length=1, description="New chat title")


class SessionDTO(BaseDTO):
    """Chat session DTO."""

    id: str = Field(description="Session identifier")
    owner_id: int = Field(description="Owner identity")
    title: str = Field(description="Chat title")
    last_activity: datetime = Field(description="Time of the last message")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_model(cls, model: SessionModel) -> "SessionDTO":
        return cls.model_validate(model.model_dump())


class MessageDTO(BaseDTO):
    """Chat message DTO."""

    id: str = Field(description="Message identifier")
    role: MessageRole = Field(description="Message role: user or assistant")
    content: str = Field(description="Message content")
    sequence: int = Field(description="Position in the transcript")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_model(cls, model: MessageModel) -> "MessageDTO":
        return cls(
            id=model.id,
            role=model.role,
            content=model.content,
            sequence=model.sequence,
            created_at=model.created_at,
        )


class ConversationResponse(BaseDTO):
    """A chat with its ordered transcript."""

    chat: SessionDTO = Field(description="Chat session")
    messages: List[MessageDTO] = Field(description="Messages in transcript order")
    awaiting_reply: bool = Field(
        default=False, description="True when the last user message has no reply yet"
    )

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            chat=SessionDTO.from_model(conversation.session),
            messages=[MessageDTO.from_model(m) for m in conversation.messages],
            awaiting_reply=conversation.has_orphan(),
        )


class SessionListResponse(BaseDTO):
    """List chats response."""

    items: List[SessionDTO] = Field(description="Chats, most recent activity first")
    total: int = Field(description="Number of chats returned")
