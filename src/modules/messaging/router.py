"""
Messaging Module - API Router
"""
import uuid

from fastapi import APIRouter, Query, status

from src.modules.messaging.dependencies import MessagingServiceDep
from src.modules.messaging.schemas import (
    CallActionRequest,
    CallSessionResponse,
    CallStart,
    ConversationOpen,
    ConversationResponse,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)

router = APIRouter(prefix="/conversations", tags=["Messaging"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(service: MessagingServiceDep) -> list[ConversationResponse]:
    return await service.list_conversations()


@router.post("", response_model=ConversationResponse)
async def open_conversation(data: ConversationOpen, service: MessagingServiceDep) -> ConversationResponse:
    """Return the household's conversation, creating it on first use."""
    conversation = await service.get_or_create_conversation(data)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: uuid.UUID,
    service: MessagingServiceDep,
    limit: int = Query(100, ge=1, le=500),
) -> list[MessageResponse]:
    messages = await service.list_messages(conversation_id, limit)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: uuid.UUID,
    data: MessageCreate,
    service: MessagingServiceDep,
) -> MessageResponse:
    message = await service.send_message(conversation_id, data)
    return MessageResponse.model_validate(message)


@router.patch("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(conversation_id: uuid.UUID, service: MessagingServiceDep) -> MarkReadResponse:
    marked = await service.mark_read(conversation_id)
    return MarkReadResponse(marked=marked)


@router.post(
    "/{conversation_id}/calls",
    response_model=CallSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_call(
    conversation_id: uuid.UUID,
    data: CallStart,
    service: MessagingServiceDep,
) -> CallSessionResponse:
    """Start a call. 409 CALL_OCCUPIED while another call rings or is answered."""
    session = await service.start_call(conversation_id, data)
    return CallSessionResponse.model_validate(session)


@router.patch("/{conversation_id}/calls/{call_id}", response_model=CallSessionResponse)
async def update_call(
    conversation_id: uuid.UUID,
    call_id: uuid.UUID,
    data: CallActionRequest,
    service: MessagingServiceDep,
) -> CallSessionResponse:
    session = await service.update_call(conversation_id, call_id, data.action)
    return CallSessionResponse.model_validate(session)
