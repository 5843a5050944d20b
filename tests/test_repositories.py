from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from api.features.conversation.entities import ChatMessage, ChatSession, MessageRole
from api.features.conversation.exceptions import MessageStorageError, SessionNotFoundError
from api.features.conversation.repositories import MessageRepository, SessionRepository

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def result_of(scalar=None, one_or_none=None, rows=None):
    result = MagicMock()
    result.scalar_one.return_value = scalar
    result.scalar_one_or_none.return_value = one_or_none
    result.scalars.return_value.all.return_value = rows or []
    return result


@pytest.fixture
def db_session():
    session = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()

    async def refresh(entity):
        entity.id = entity.id or str(uuid4())
        entity.created_at = NOW
        if isinstance(entity, ChatSession):
            entity.last_activity = NOW

    session.refresh = AsyncMock(side_effect=refresh)
    return session


def session_entity(owner_id=1, title="New Chat"):
    return ChatSession(
        id=str(uuid4()), owner_id=owner_id, title=title, last_activity=NOW, created_at=NOW
    )


@pytest.mark.asyncio
async def test_append_assigns_next_sequence_and_commits(db_session):
    db_session.execute.return_value = result_of(scalar=3)
    repo = MessageRepository(db_session)

    message = await repo.append("s-1", MessageRole.USER, "Hello")

    assert message.sequence == 4
    assert message.role == MessageRole.USER
    assert message.session_id == "s-1"
    assert message.created_at == NOW
    added = db_session.add.call_args.args[0]
    assert isinstance(added, ChatMessage)
    assert added.role == "user"
    db_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_append_starts_sequence_at_one(db_session):
    db_session.execute.return_value = result_of(scalar=0)
    repo = MessageRepository(db_session)

    message = await repo.append("s-1", MessageRole.ASSISTANT, "Hi")

    assert message.sequence == 1
    assert message.role == MessageRole.ASSISTANT


@pytest.mark.asyncio
async def test_append_failure_rolls_back(db_session):
    db_session.flush.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
    db_session.execute.return_value = result_of(scalar=0)
    repo = MessageRepository(db_session)

    with pytest.raises(MessageStorageError) as exc_info:
        await repo.append("s-1", MessageRole.USER, "Hello")

    assert exc_info.value.details["operation"] == "append_message"
    db_session.rollback.assert_awaited_once()
    db_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_by_session_maps_rows(db_session):
    rows = [
        ChatMessage(
            id=str(uuid4()), session_id="s-1", role=role, content=text,
            sequence=i + 1, created_at=NOW,
        )
        for i, (role, text) in enumerate([("user", "Hello"), ("assistant", "Hi there")])
    ]
    db_session.execute.return_value = result_of(rows=rows)
    repo = MessageRepository(db_session)

    messages = await repo.list_by_session("s-1")

    assert [(m.role, m.content) for m in messages] == [
        (MessageRole.USER, "Hello"),
        (MessageRole.ASSISTANT, "Hi there"),
    ]
    stmt = str(db_session.execute.call_args.args[0])
    assert "ORDER BY chat_message.created_at ASC, chat_message.sequence ASC" in stmt


@pytest.mark.asyncio
async def test_create_session_commits(db_session):
    repo = SessionRepository(db_session)

    session = await repo.create(7, "New Chat")

    assert session.owner_id == 7
    assert session.title == "New Chat"
    assert session.last_activity == NOW
    db_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_missing_session(db_session):
    db_session.execute.return_value = result_of(one_or_none=None)
    repo = SessionRepository(db_session)

    with pytest.raises(SessionNotFoundError):
        await repo.get_by_id("missing")


@pytest.mark.asyncio
async def test_get_session(db_session):
    entity = session_entity(owner_id=3)
    db_session.execute.return_value = result_of(one_or_none=entity)
    repo = SessionRepository(db_session)

    session = await repo.get_by_id(entity.id)

    assert session.id == entity.id
    assert session.owner_id == 3


@pytest.mark.asyncio
async def test_list_by_owner_orders_by_activity(db_session):
    db_session.execute.return_value = result_of(rows=[session_entity(), session_entity()])
    repo = SessionRepository(db_session)

    sessions = await repo.list_by_owner(1, limit=50)

    assert len(sessions) == 2
    stmt = str(db_session.execute.call_args.args[0])
    assert "ORDER BY chat_session.last_activity DESC, chat_session.created_at DESC" in stmt
    assert "LIMIT" in stmt


@pytest.mark.asyncio
async def test_touch_missing_session(db_session):
    db_session.execute.return_value = result_of(one_or_none=None)
    repo = SessionRepository(db_session)

    with pytest.raises(SessionNotFoundError):
        await repo.touch("missing")

    db_session.rollback.assert_awaited_once()
    db_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_rename_returns_updated_session(db_session):
    entity = session_entity(title="Trip planning")
    db_session.execute.return_value = result_of(one_or_none=entity)
    repo = SessionRepository(db_session)

    session = await repo.rename(entity.id, "Trip planning")

    assert session.title == "Trip planning"
    db_session.commit.assert_awaited_once()


def test_registry_exposes_chat_tables():
    from api.shared.entities.registry import BaseEntity

    tables = BaseEntity.metadata.tables
    assert {"chat_session", "chat_message"} <= set(tables)
    constraints = {c.name for c in tables["chat_message"].constraints}
    assert "uq_chat_message_session_sequence" in constraints
    fk = next(iter(tables["chat_message"].c.session_id.foreign_keys))
    assert fk.ondelete == "CASCADE"


def test_message_timestamp_is_taken_at_insert_time():
    created_at = ChatMessage.__table__.c.created_at

    assert "clock_timestamp" in str(created_at.server_default.arg)
    assert "now" in str(ChatSession.__table__.c.created_at.server_default.arg)


def test_session_messages_are_never_lazy_loaded():
    assert ChatSession.messages.property.lazy == "raise"


@pytest.mark.asyncio
async def test_read_failure_is_storage_error(db_session):
    db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
    repo = SessionRepository(db_session)

    with pytest.raises(MessageStorageError) as exc_info:
        await repo.list_by_owner(1)

    assert exc_info.value.details["operation"] == "list_sessions"
    db_session.rollback.assert_awaited_once()
