"""
Thunder - API Routes
=====================
Thin controllers: validate the request, delegate to the ``ChatService``
stored on ``app.state`` and shape the response.  No business logic and
no database calls live here.

Endpoints:
    GET  /api/health
    GET  /api/conversations
    GET  /api/conversations/{conversation_id}
    POST /api/conversations
    POST /api/chat
    POST /api/context
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from thunder.src.api.schemas import ChatRequest, ChatResponse, ContextRequest, ContextResponse, Conversation, ConversationCreate, ConversationDetail, HealthResponse, Message
from thunder.src.core.chat_engine import ChatService
from thunder.src.core.errors import ThunderError
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Chat service is not initialised")
    return service


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(ok=True)


@router.get("/conversations", response_model=list[Conversation])
async def list_conversations(service: ChatService = Depends(get_chat_service)) -> list[Conversation]:
    docs = await service.store.list_conversations()
    return [Conversation(**doc) for doc in docs]


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(conversation_id: str, service: ChatService = Depends(get_chat_service)) -> ConversationDetail:
    doc = await service.store.get_conversation(conversation_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="not found")
    messages = await service.store.get_messages(conversation_id)
    return ConversationDetail(conversation=Conversation(**doc), messages=[Message(**m) for m in messages])


@router.post("/conversations", response_model=Conversation)
async def create_conversation(body: ConversationCreate, service: ChatService = Depends(get_chat_service)) -> Conversation:
    doc = await service.store.create_conversation(body.title)
    return Conversation(**doc)


@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, service: ChatService = Depends(get_chat_service)) -> ChatResponse:
    try:
        result = await service.chat(body.message, body.conversation_id)
    except Exception as exc:
        logger.exception("[API] Chat turn failed.")
        raise HTTPException(status_code=500, detail=str(exc) or "error") from exc
    return ChatResponse(conversation_id=result.conversation_id, reply=result.reply)


@router.post("/context", response_model=ContextResponse)
async def context(body: ContextRequest, service: ChatService = Depends(get_chat_service)) -> ContextResponse:
    try:
        result = await service.get_context(body.question)
    except ThunderError as exc:
        logger.error("[API] Retrieval unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ContextResponse(context=result.context, used=list(result.used))
