"""Controller for the Conversation feature."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    ConversationResponse,
    CreateChatRequest,
    RenameChatRequest,
    SendMessageRequest,
    SessionDTO,
    SessionListResponse,
)
from api.features.conversation.service import ConversationManager


class ConversationController:
    """Maps chat DTOs onto conversation manager operations."""

    def __init__(self, conversation_manager: ConversationManager):
        self.conversation_manager = conversation_manager

    async def create_chat(
        self, request: CreateChatRequest, *, requester_id: int, db_session: AsyncSession
    ) -> ConversationResponse:
        conversation = await self.conversation_manager.create_session(
            requester_id, request.initial_message, db_session=db_session
        )
        return ConversationResponse.from_conversation(conversation)

    async def list_chats(
        self, *, requester_id: int, limit: Optional[int], db_session: AsyncSession
    ) -> SessionListResponse:
        sessions = await self.conversation_manager.list_sessions(
            requester_id, limit=limit, db_session=db_session
        )
        items = [SessionDTO.from_model(s) for s in sessions]
        return SessionListResponse(items=items, total=len(items))

    async def get_chat(
        self, session_id: str, *, requester_id: int, db_session: AsyncSession
    ) -> ConversationResponse:
        conversation = await self.conversation_manager.get_session(
            session_id, requester_id, db_session=db_session
        )
        return ConversationResponse.from_conversation(conversation)

    async def send_message(
        self,
        session_id: str,
        request: SendMessageRequest,
        *,
        requester_id: int,
        db_session: AsyncSession,
    ) -> ConversationResponse:
        conversation = await self.conversation_manager.send_message(
            session_id, requester_id, request.message, db_session=db_session
        )
        return ConversationResponse.from_conversation(conversation)

    async def retry_reply(
        self, session_id: str, *, requester_id: int, db_session: AsyncSession
    ) -> ConversationResponse:
        conversation = await self.conversation_manager.retry_generation(
            session_id, requester_id, db_session=db_session
        )
        return ConversationResponse.from_conversation(conversation)

    async def rename_chat(
        self,
        session_id: str,
        request: RenameChatRequest,
        *,
        requester_id: int,
        db_session: AsyncSession,
    ) -> SessionDTO:
        session = await self.conversation_manager.rename_session(
            session_id, requester_id, request.title, db_session=db_session
        )
        return SessionDTO.from_model(session)
