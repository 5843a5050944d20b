"""Message log: the ordered, append-only transcript of a session."""
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy import func, select

from api.features.conversation.entities import ChatMessage, MessageRole
from api.features.conversation.models import MessageModel
from api.features.conversation.repositories.base import storage_guard
from api.shared.base import BaseRepository


class MessageLog(ABC):
    """Contract for transcript storage. Role alternation is not enforced here."""

    @abstractmethod
    async def append(self, session_id: str, role: MessageRole, content: str) -> MessageModel:
        """Persist one message and return it with id, sequence and timestamp."""

    @abstractmethod
    async def list_by_session(self, session_id: str) -> List[MessageModel]:
        """Return the full transcript in order; empty when there are no messages."""


class MessageRepository(BaseRepository[ChatMessage], MessageLog):
    """SQLAlchemy implementation of the message log."""

    model = ChatMessage

    async def _next_sequence(self, session_id: str) -> int:
        stmt = select(func.coalesce(func.max(ChatMessage.sequence), 0)).where(
            ChatMessage.session_id == session_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one()) + 1

    @storage_guard("append_message")
    async def append(self, session_id: str, role: MessageRole, content: str) -> MessageModel:
        entity = ChatMessage(
            session_id=session_id,
            role=MessageRole(role).value,
            content=content,
            sequence=await self._next_sequence(session_id),
        )
        entity = await self.create(entity)
        await self.session.commit()
        return MessageModel.from_entity(entity)

    @storage_guard("list_messages")
    async def list_by_session(self, session_id: str) -> List[MessageModel]:
        entities = await self.list(
            order_by=["created_at", "sequence"], session_id=session_id
        )
        return [MessageModel.from_entity(e) for e in entities]
