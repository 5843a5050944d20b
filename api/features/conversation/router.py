"""Router for the Conversation feature."""
import logging
from typing import Optional
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from di.container import ApplicationContainer as DependencyContainer
from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    ConversationResponse,
    CreateChatRequest,
    RenameChatRequest,
    SendMessageRequest,
    SessionDTO,
    SessionListResponse,
)
from api.shared.auth import get_requester_id
from api.shared.db import get_db_session
from api.shared.dtos import HealthCheckResponse
from api.shared.exceptions import ChatServiceException
from api.shared.response import ResponseModel

router = APIRouter()
logger = logging.getLogger("chat.conversation.router")


@router.get("/health", response_model=ResponseModel[HealthCheckResponse])
async def health_check():
    return ResponseModel.success(
        data=HealthCheckResponse(
            status="healthy", dependencies={"database": "ok", "completion": "ok"}
        ),
        message="Chat service is healthy",
    )


@router.post("/", response_model=ResponseModel[ConversationResponse], status_code=201)
@inject
async def create_chat(
    request: CreateChatRequest,
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.create_chat(
            request, requester_id=requester_id, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Chat created")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to create chat")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/", response_model=ResponseModel[SessionListResponse])
@inject
async def list_chats(
    limit: Optional[int] = Query(None, ge=1, le=200),
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.list_chats(
            requester_id=requester_id, limit=limit, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Chats listed")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to list chats")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{session_id}", response_model=ResponseModel[ConversationResponse])
@inject
async def get_chat(
    session_id: UUID,
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.get_chat(
            str(session_id), requester_id=requester_id, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Chat fetched")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to fetch chat")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{session_id}/messages", response_model=ResponseModel[ConversationResponse])
@inject
async def send_message(
    session_id: UUID,
    request: SendMessageRequest,
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    logger.info("SendMessage - request for chat %s", session_id)
    try:
        result = await controller.send_message(
            str(session_id), request, requester_id=requester_id, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Message sent")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to send message")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{session_id}/retry", response_model=ResponseModel[ConversationResponse])
@inject
async def retry_reply(
    session_id: UUID,
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.retry_reply(
            str(session_id), requester_id=requester_id, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Reply generated")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to retry reply")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/{session_id}", response_model=ResponseModel[SessionDTO])
@inject
async def rename_chat(
    session_id: UUID,
    request: RenameChatRequest,
    requester_id: int = Depends(get_requester_id),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.rename_chat(
            str(session_id), request, requester_id=requester_id, db_session=db_session
        )
        return ResponseModel.success(data=result, message="Chat renamed")
    except ChatServiceException:
        raise
    except Exception as e:
        logger.exception("Failed to rename chat")
        raise HTTPException(status_code=500, detail=str(e))
