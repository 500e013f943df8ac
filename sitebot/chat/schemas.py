"""Pydantic schemas for chat requests."""

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    bot_id: str
    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str | None = Field(None, max_length=100)


class WidgetChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str | None = Field(None, max_length=100)
    stream: bool = False
