"""Conversation ORM entities."""
from api.features.conversation.entities.chat_message import ChatMessage, MessageRole
from api.features.conversation.entities.chat_session import ChatSession

__all__ = ["ChatMessage", "ChatSession", "MessageRole"]
