"""Chat endpoints - send a question, manage rooms, read history."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from backend.app.api.deps import get_chat_service
from backend.app.chat.service import ChatService
from backend.app.models.chat import (
    AnswerMetadata,
    ChatHistoryEntry,
    ChatRoom,
    ChatSessionSummary,
    FormattedClause,
)

router = APIRouter(prefix="/chat", tags=["chat"])

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


class SendMessageRequest(BaseModel):
    """Request body for POST /chat/messages."""

    content: str = Field("", description="Question text")
    account_id: str = Field("", description="Asking user")
    chat_id: str | None = Field(None, description="Existing session id; generated if omitted")


class SendMessageResponse(BaseModel):
    """Response for POST /chat/messages."""

    success: bool = True
    question: str
    answer: str
    ai_general_response: str
    related_clauses: list[FormattedClause]
    chat_id: str
    metadata: AnswerMetadata
    timestamp: datetime


class CreateRoomRequest(BaseModel):
    """Request body for POST /chat/rooms."""

    account_id: str = Field("", description="Room owner")
    room_name: str | None = Field(None, max_length=200)
    chat_id: str | None = None


class RoomListResponse(BaseModel):
    rooms: list[ChatRoom]


class HistoryResponse(BaseModel):
    chat_id: str | None = None
    messages: list[ChatHistoryEntry]


class SessionListResponse(BaseModel):
    sessions: list[ChatSessionSummary]


@router.post("/messages", response_model=SendMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(request: SendMessageRequest, chat: ChatServiceDep) -> SendMessageResponse:
    """Answer a question with a general explanation plus matching clauses."""
    turn = await chat.send_message(request.content, request.account_id, request.chat_id)

    return SendMessageResponse(
        question=turn.question.content,
        answer=turn.answer.content,
        ai_general_response=turn.ai_general_response,
        related_clauses=turn.related_clauses,
        chat_id=turn.chat_id,
        metadata=turn.metadata,
        timestamp=datetime.now(timezone.utc),
    )


@router.post("/rooms", response_model=ChatRoom, status_code=status.HTTP_201_CREATED)
async def create_room(request: CreateRoomRequest, chat: ChatServiceDep) -> ChatRoom:
    """Create a named chat room (409 if the chat_id is taken)."""
    return await chat.create_room(
        account_id=request.account_id, room_name=request.room_name, chat_id=request.chat_id
    )


@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(
    chat: ChatServiceDep, account_id: Annotated[str, Query(min_length=1)]
) -> RoomListResponse:
    """List a user's rooms, most recently updated first."""
    return RoomListResponse(rooms=await chat.list_rooms(account_id))


@router.get("/rooms/{chat_id}/messages", response_model=HistoryResponse)
async def get_room_messages(chat_id: str, chat: ChatServiceDep) -> HistoryResponse:
    """All turns of one room, oldest first."""
    return HistoryResponse(chat_id=chat_id, messages=await chat.get_room_messages(chat_id))


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    chat: ChatServiceDep, user_id: Annotated[str, Query(min_length=1)]
) -> SessionListResponse:
    """A user's sessions with their opening question, newest activity first."""
    return SessionListResponse(sessions=await chat.list_sessions(user_id))


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    chat: ChatServiceDep,
    user_id: Annotated[str, Query(min_length=1)],
    chat_id: str | None = None,
) -> HistoryResponse:
    """A user's questions and answers, optionally limited to one session."""
    return HistoryResponse(chat_id=chat_id, messages=await chat.list_history(user_id, chat_id))
