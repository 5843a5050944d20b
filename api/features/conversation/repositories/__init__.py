"""Persistence for chat sessions and their transcripts."""
from api.features.conversation.repositories.message_repository import (
    MessageLog,
    MessageRepository,
)
from api.features.conversation.repositories.session_repository import (
    SessionRepository,
    SessionStore,
)

__all__ = ["MessageLog", "MessageRepository", "SessionRepository", "SessionStore"]
