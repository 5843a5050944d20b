"""Session store: chat session metadata and ownership."""
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import func

from api.features.conversation.entities import ChatSession
from api.features.conversation.exceptions import SessionNotFoundError
from api.features.conversation.models import SessionModel
from api.features.conversation.repositories.base import storage_guard
from api.shared.base import BaseRepository


class SessionStore(ABC):
    """Contract for chat session metadata storage."""

    @abstractmethod
    async def create(self, owner_id: int, title: str) -> SessionModel:
        """Persist a new session with no messages."""

    @abstractmethod
    async def get_by_id(self, session_id: str) -> SessionModel:
        """Return the session or raise ``SessionNotFoundError``."""

    @abstractmethod
    async def list_by_owner(
        self, owner_id: int, limit: Optional[int] = None
    ) -> List[SessionModel]:
        """Return the owner's sessions, most recent activity first."""

    @abstractmethod
    async def touch(self, session_id: str) -> None:
        """Bump ``last_activity`` to now."""

    @abstractmethod
    async def rename(self, session_id: str, title: str) -> SessionModel:
        """Replace the session title."""


class SessionRepository(BaseRepository[ChatSession], SessionStore):
    """SQLAlchemy implementation of the session store.

    Every write commits before returning so later reads on any connection
    observe it.
    """

    model = ChatSession

    @storage_guard("create_session")
    async def create(self, owner_id: int, title: str) -> SessionModel:
        entity = await super().create(ChatSession(owner_id=owner_id, title=title))
        await self.session.commit()
        return SessionModel.from_entity(entity)

    @storage_guard("get_session")
    async def get_by_id(self, session_id: str) -> SessionModel:
        entity = await super().get_by_id(session_id)
        if entity is None:
            raise SessionNotFoundError(session_id)
        return SessionModel.from_entity(entity)

    @storage_guard("list_sessions")
    async def list_by_owner(
        self, owner_id: int, limit: Optional[int] = None
    ) -> List[SessionModel]:
        entities = await self.list(
            limit=limit, order_by=["-last_activity", "-created_at"], owner_id=owner_id
        )
        return [SessionModel.from_entity(e) for e in entities]

    @storage_guard("touch_session")
    async def touch(self, session_id: str) -> None:
        entity = await self.update_by_id(session_id, last_activity=func.now())
        if entity is None:
            await self.session.rollback()
            raise SessionNotFoundError(session_id)
        await self.session.commit()

    @storage_guard("rename_session")
    async def rename(self, session_id: str, title: str) -> SessionModel:
        entity = await self.update_by_id(session_id, title=title)
        if entity is None:
            await self.session.rollback()
            raise SessionNotFoundError(session_id)
        await self.session.commit()
        return SessionModel.from_entity(entity)
