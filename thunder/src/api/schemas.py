"""
Thunder - API Schemas
======================
Pydantic request / response models for the HTTP layer.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    ok: bool = True


class ConversationCreate(BaseModel):
    title: str | None = Field(None, description="Conversation title (defaults to 'New')")


class Conversation(BaseModel):
    id: str
    title: str | None = None
    model: str | None = None
    summary: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Message(BaseModel):
    role: str
    content: str = ""
    created_at: datetime | None = None


class ConversationDetail(BaseModel):
    conversation: Conversation
    messages: list[Message]


class ChatRequest(BaseModel):
    """One user turn; a missing or unknown ``conversation_id`` starts a new conversation."""

    conversation_id: str | None = Field(None, description="Existing conversation id")
    message: str = Field(..., min_length=1, description="User message")


class ChatResponse(BaseModel):
    conversation_id: str
    reply: str


class ContextRequest(BaseModel):
    question: str = Field(..., min_length=1)


class ContextResponse(BaseModel):
    context: str
    used: list[str]
