"""
Shared fixtures: in-memory session store / message log and a scripted
completion client, wired into a ConversationManager.
"""
from __future__ import annotations

import asyncio
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4

import pytest

# Add project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.features.conversation.entities import MessageRole  # noqa: E402
from api.features.conversation.exceptions import (  # noqa: E402
    MessageStorageError,
    SessionNotFoundError,
)
from api.features.conversation.models import MessageModel, SessionModel  # noqa: E402
from api.features.conversation.repositories import MessageLog, SessionStore  # noqa: E402
from api.features.conversation.service import ConversationManager  # noqa: E402

FROZEN_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class InMemoryBackend:
    """Shared state behind the fake stores.

    All messages get the same ``created_at`` so ordering relies on the
    sequence tie-break. Operation names listed in ``fail_on`` raise
    ``MessageStorageError``.
    """

    def __init__(self) -> None:
        self.sessions: Dict[str, SessionModel] = {}
        self.messages: Dict[str, List[MessageModel]] = defaultdict(list)
        self.fail_on: set[str] = set()
        self.calls: Dict[str, int] = defaultdict(int)
        self._tick = 0

    def activity_time(self) -> datetime:
        self._tick += 1
        return FROZEN_NOW + timedelta(seconds=self._tick)

    async def enter(self, operation: str) -> None:
        self.calls[operation] += 1
        # Yield so concurrent tasks can interleave at every storage call
        await asyncio.sleep(0)
        if operation in self.fail_on:
            raise MessageStorageError(operation, "simulated failure")


class FakeSessionStore(SessionStore):
    def __init__(self, backend: InMemoryBackend):
        self.backend = backend

    async def create(self, owner_id: int, title: str) -> SessionModel:
        await self.backend.enter("create_session")
        session = SessionModel(
            id=str(uuid4()),
            owner_id=owner_id,
            title=title,
            last_activity=FROZEN_NOW,
            created_at=FROZEN_NOW,
        )
        self.backend.sessions[session.id] = session
        return session

    async def get_by_id(self, session_id: str) -> SessionModel:
        await self.backend.enter("get_session")
        if session_id not in self.backend.sessions:
            raise SessionNotFoundError(session_id)
        return self.backend.sessions[session_id]

    async def list_by_owner(self, owner_id: int, limit: Optional[int] = None) -> List[SessionModel]:
        await self.backend.enter("list_sessions")
        owned = [s for s in self.backend.sessions.values() if s.owner_id == owner_id]
        owned.sort(key=lambda s: s.last_activity, reverse=True)
        return owned[:limit] if limit else owned

    async def touch(self, session_id: str) -> None:
        await self.backend.enter("touch_session")
        if session_id not in self.backend.sessions:
            raise SessionNotFoundError(session_id)
        session = self.backend.sessions[session_id]
        self.backend.sessions[session_id] = session.model_copy(
            update={"last_activity": self.backend.activity_time()}
        )

    async def rename(self, session_id: str, title: str) -> SessionModel:
        await self.backend.enter("rename_session")
        if session_id not in self.backend.sessions:
            raise SessionNotFoundError(session_id)
        session = self.backend.sessions[session_id].model_copy(update={"title": title})
        self.backend.sessions[session_id] = session
        return session


class FakeMessageLog(MessageLog):
    def __init__(self, backend: InMemoryBackend):
        self.backend = backend

    async def append(self, session_id: str, role: MessageRole, content: str) -> MessageModel:
        await self.backend.enter("append_message")
        log = self.backend.messages[session_id]
        message = MessageModel(
            id=str(uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            sequence=len(log) + 1,
            created_at=FROZEN_NOW,
        )
        log.append(message)
        return message

    async def list_by_session(self, session_id: str) -> List[MessageModel]:
        await self.backend.enter("list_messages")
        return sorted(
            self.backend.messages.get(session_id, []),
            key=lambda m: (m.created_at, m.sequence),
        )


Reply = Union[str, Exception, Callable[[Sequence[MessageModel]], str]]


class ScriptedCompletion:
    """Completion client returning scripted replies and recording transcripts."""

    def __init__(self, *replies: Reply, delay: float = 0.0):
        self.replies: List[Reply] = list(replies)
        self.delay = delay
        self.transcripts: List[List[tuple]] = []
        self.timeouts: List[float] = []

    async def complete(self, transcript: Sequence[MessageModel], *, timeout: float) -> str:
        self.transcripts.append([(m.role.value, m.content) for m in transcript])
        self.timeouts.append(timeout)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(transcript)
        return reply


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def completion() -> ScriptedCompletion:
    return ScriptedCompletion()


@pytest.fixture
def manager(backend: InMemoryBackend, completion: ScriptedCompletion) -> ConversationManager:
    return ConversationManager(
        completion,
        default_title="New Chat",
        title_max_length=100,
        completion_timeout=5.0,
        session_store_factory=lambda _db: FakeSessionStore(backend),
        message_log_factory=lambda _db: FakeMessageLog(backend),
    )
