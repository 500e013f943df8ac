"""Pydantic schemas for conversation responses."""

from typing import Any

from pydantic import BaseModel, Field


class ConversationResponse(BaseModel):
    id: str
    bot_id: str
    session_id: str
    message_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None


class ConversationListResponse(BaseModel):
    status: str = "success"
    data: list[ConversationResponse]
    page: int
    per_page: int
    total: int
