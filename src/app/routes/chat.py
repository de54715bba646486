"""
Chat Routes: 대화 API.

- POST /chat → 턴 처리 (추론 + 저장)
- GET /chats → 저장된 대화 목록
- PATCH /chats/{chat_id} → 제목 변경

에러 매핑 (엔드포인트 경계에서 일괄 처리):
- ValidationError → 400 {error: 메시지}
- 그 외 모든 실패 → 500 {error: 일반 메시지}
내부 에러 상세는 로그에만 남기고 응답에 포함하지 않는다.
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.app.services.conversations import ConversationStore
from src.app.services.turns import ChatTurnService
from src.domain.constants import (
    GENERIC_LIST_ERROR,
    GENERIC_RENAME_ERROR,
    GENERIC_TURN_ERROR,
)
from src.domain.errors import ValidationError
from src.domain.schemas import Message

logger = logging.getLogger(__name__)

# Router
api_router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessageIn] = Field(..., min_length=1)
    conversationId: str | None = Field(
        default=None,
        description="keyed 저장 모드에서 append할 대화 ID",
    )


class RenameRequest(BaseModel):
    title: str


# =============================================================================
# Dependencies
# =============================================================================


def get_turn_service(request: Request) -> ChatTurnService:
    """Request에서 턴 서비스 가져오기."""
    return request.app.state.turn_service


def get_conversation_store(request: Request) -> ConversationStore:
    """Request에서 대화 저장소 가져오기."""
    return request.app.state.conversation_store


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# =============================================================================
# API Routes
# =============================================================================


@api_router.post("/chat")
async def send_turn(request: Request, body: ChatRequest) -> Any:
    """
    턴 처리.

    Returns:
        200 {reply, conversationId, saved} / 400 {error} / 500 {error}
    """
    service = get_turn_service(request)
    messages = [Message(role=m.role, content=m.content) for m in body.messages]

    try:
        result = await service.handle_turn(messages, conversation_id=body.conversationId)
    except ValidationError as e:
        return error_response(400, e.message)
    except Exception as e:
        logger.error(f"Chat turn failed: {e}", exc_info=True)
        return error_response(500, GENERIC_TURN_ERROR)

    return result.to_dict()


@api_router.get("/chats")
async def list_chats(request: Request) -> Any:
    """
    저장된 대화 목록.

    Returns:
        200 [{id, title, createdAt, messages}] / 500 {error}
    """
    store = get_conversation_store(request)
    try:
        conversations = store.list_all()
    except Exception as e:
        logger.error(f"Error fetching chats: {e}", exc_info=True)
        return error_response(500, GENERIC_LIST_ERROR)

    return [c.to_dict() for c in conversations]


@api_router.patch("/chats/{chat_id}")
async def rename_chat(request: Request, chat_id: str, body: RenameRequest) -> Any:
    """
    제목 변경.

    Returns:
        200 {success: true} / 400 {error} (빈 제목) / 500 {error}
    """
    store = get_conversation_store(request)
    try:
        store.rename(chat_id, body.title)
    except ValidationError as e:
        return error_response(400, e.message)
    except Exception as e:
        logger.error(f"Error renaming chat {chat_id}: {e}", exc_info=True)
        return error_response(500, GENERIC_RENAME_ERROR)

    return {"success": True}
