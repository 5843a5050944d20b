"""Conversation manager: sessions, transcripts and reply generation.

User input is committed before the completion service is called, so a failed
generation leaves an unanswered user message behind instead of losing it.
Such a failure is re-raised with ``details["user_message_saved"] = True`` and
the caller may resume with ``retry_generation``.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.completion import CompletionClient
from api.features.conversation.entities import MessageRole
from api.features.conversation.exceptions import (
    CompletionError,
    InvalidMessageError,
    NothingToRetryError,
    SessionAccessDeniedError,
)
from api.features.conversation.locks import KeyedLock
from api.features.conversation.models import Conversation, MessageModel, SessionModel
from api.features.conversation.repositories import (
    MessageLog,
    MessageRepository,
    SessionRepository,
    SessionStore,
)
from api.shared.exceptions import StorageError

logger = structlog.get_logger("chat.conversation")


class ConversationManager:
    """Orchestrates the session store, the message log and the completion client.

    One instance serves the whole application: its lock map serializes every
    read-then-append cycle on a session while different sessions proceed in
    parallel. Repositories are bound per call to the request's database
    session.
    """

    def __init__(
        self,
        completion_client: CompletionClient,
        *,
        default_title: str,
        title_max_length: int,
        completion_timeout: float,
        list_limit: Optional[int] = None,
        session_store_factory: Callable[[AsyncSession], SessionStore] = SessionRepository,
        message_log_factory: Callable[[AsyncSession], MessageLog] = MessageRepository,
    ):
        self.completion_client = completion_client
        self.default_title = default_title
        self.title_max_length = title_max_length
        self.completion_timeout = completion_timeout
        self.list_limit = list_limit
        self.session_store_factory = session_store_factory
        self.message_log_factory = message_log_factory
        self.locks = KeyedLock()

    def _stores(self, db_session: AsyncSession) -> Tuple[SessionStore, MessageLog]:
        return self.session_store_factory(db_session), self.message_log_factory(db_session)

    @staticmethod
    def _clean_text(text: Optional[str]) -> str:
        if text is None or not text.strip():
            raise InvalidMessageError("Message text must not be empty")
        return text

    def _clean_title(self, title: Optional[str]) -> str:
        title = (title or "").strip()
        if not title:
            raise InvalidMessageError("Title must not be empty")
        if len(title) > self.title_max_length:
            raise InvalidMessageError(
                f"Title exceeds {self.title_max_length} characters",
                {"length": len(title), "max_length": self.title_max_length},
            )
        return title

    @staticmethod
    async def _end_transaction(db_session: Optional[AsyncSession]) -> None:
        """Release the pooled connection held by earlier reads."""
        if db_session is not None and db_session.in_transaction():
            await db_session.commit()

    async def _authorize(
        self, sessions: SessionStore, session_id: str, requester_id: int
    ) -> SessionModel:
        session = await sessions.get_by_id(session_id)
        if session.owner_id != requester_id:
            logger.warning(
                "session_access_denied",
                session_id=session_id,
                owner_id=session.owner_id,
                requester_id=requester_id,
                reason="possible authorization probe",
            )
            raise SessionAccessDeniedError(session_id, requester_id)
        return session

    async def _append_user(
        self, sessions: SessionStore, messages: MessageLog, session_id: str, text: str
    ) -> MessageModel:
        try:
            message = await messages.append(session_id, MessageRole.USER, text)
        except StorageError as e:
            e.details.update(session_id=session_id, user_message_saved=False)
            raise
        try:
            await sessions.touch(session_id)
        except StorageError as e:
            e.details.update(
                session_id=session_id, user_message_id=message.id, user_message_saved=True
            )
            raise
        logger.info("message_appended", session_id=session_id, role="user", sequence=message.sequence)
        return message

    async def _reply(
        self,
        sessions: SessionStore,
        messages: MessageLog,
        session_id: str,
        transcript: List[MessageModel],
        db_session: Optional[AsyncSession] = None,
    ) -> MessageModel:
        """Generate and store the assistant reply to ``transcript``."""
        pending = transcript[-1]
        await self._end_transaction(db_session)
        try:
            text = await self.completion_client.complete(
                transcript, timeout=self.completion_timeout
            )
        except CompletionError as e:
            logger.warning(
                "reply_generation_failed",
                session_id=session_id,
                user_message_id=pending.id,
                error_code=e.error_code,
            )
            raise e.mark_saved(session_id, pending.id)

        try:
            reply = await messages.append(session_id, MessageRole.ASSISTANT, text)
            await sessions.touch(session_id)
        except StorageError as e:
            e.details.update(
                session_id=session_id,
                user_message_id=pending.id,
                user_message_saved=True,
            )
            raise
        logger.info(
            "message_appended", session_id=session_id, role="assistant", sequence=reply.sequence
        )
        return reply

    async def create_session(
        self, owner_id: int, initial_text: str, *, db_session: AsyncSession
    ) -> Conversation:
        """Open a session seeded with ``initial_text`` and its generated reply."""
        text = self._clean_text(initial_text)
        sessions, messages = self._stores(db_session)

        try:
            session = await sessions.create(owner_id, self.default_title)
        except StorageError as e:
            e.details.update(user_message_saved=False)
            raise
        logger.info("session_created", session_id=session.id, owner_id=owner_id)

        async with self.locks.hold(session.id):
            user_message = await self._append_user(sessions, messages, session.id, text)
            reply = await self._reply(
                sessions, messages, session.id, [user_message], db_session
            )
            session = await sessions.get_by_id(session.id)
        return Conversation(session=session, messages=[user_message, reply])

    async def list_sessions(
        self, owner_id: int, *, limit: Optional[int] = None, db_session: AsyncSession
    ) -> List[SessionModel]:
        sessions, _ = self._stores(db_session)
        return await sessions.list_by_owner(owner_id, limit=limit or self.list_limit)

    async def get_session(
        self, session_id: str, requester_id: int, *, db_session: AsyncSession
    ) -> Conversation:
        """Return the session and its transcript if ``requester_id`` owns it."""
        sessions, messages = self._stores(db_session)
        session = await self._authorize(sessions, session_id, requester_id)
        transcript = await messages.list_by_session(session_id)
        return Conversation(session=session, messages=transcript)

    async def send_message(
        self, session_id: str, requester_id: int, text: str, *, db_session: AsyncSession
    ) -> Conversation:
        """Append ``text`` as a user message and the generated reply."""
        text = self._clean_text(text)
        sessions, messages = self._stores(db_session)

        async with self.locks.hold(session_id):
            conversation = await self.get_session(session_id, requester_id, db_session=db_session)
            user_message = await self._append_user(sessions, messages, session_id, text)
            transcript = [*conversation.messages, user_message]
            reply = await self._reply(sessions, messages, session_id, transcript, db_session)
            session = await sessions.get_by_id(session_id)
        return Conversation(session=session, messages=[*transcript, reply])

    async def retry_generation(
        self, session_id: str, requester_id: int, *, db_session: AsyncSession
    ) -> Conversation:
        """Generate the missing reply for a transcript ending in a user message."""
        sessions, messages = self._stores(db_session)

        async with self.locks.hold(session_id):
            conversation = await self.get_session(session_id, requester_id, db_session=db_session)
            if not conversation.has_orphan():
                raise NothingToRetryError(session_id)
            logger.info("reply_generation_retried", session_id=session_id)
            reply = await self._reply(
                sessions, messages, session_id, conversation.messages, db_session
            )
            session = await sessions.get_by_id(session_id)
        return Conversation(session=session, messages=[*conversation.messages, reply])

    async def rename_session(
        self, session_id: str, requester_id: int, title: str, *, db_session: AsyncSession
    ) -> SessionModel:
        title = self._clean_title(title)
        sessions, _ = self._stores(db_session)

        async with self.locks.hold(session_id):
            await self._authorize(sessions, session_id, requester_id)
            return await sessions.rename(session_id, title)
