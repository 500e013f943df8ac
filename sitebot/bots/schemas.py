"""Pydantic schemas for bot requests and widget settings."""

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, field_validator

Position = Literal["bottom-right", "bottom-left", "top-right", "top-left"]

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class BotSettings(BaseModel):
    """Widget appearance and answer generation settings, stored in ``bots.settings``."""

    # Appearance
    position: Position = "bottom-right"
    primary_color: str = Field("#0ea5e9", pattern=HEX_COLOR)
    secondary_color: str = Field("#f3f4f6", pattern=HEX_COLOR)
    title: str | None = Field(None, max_length=100)
    greeting: str = Field("Hi! How can I help you today?", max_length=500)
    placeholder: str = Field("Type your message...", max_length=100)
    show_powered_by: bool = True
    suggested_actions: list[str] = Field(default_factory=list, max_length=6)

    # Triggers
    auto_open: bool = False
    auto_open_delay: int = 3000
    scroll_trigger: bool = False
    scroll_trigger_percentage: int = 50

    # Generation
    model: str | None = None
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(500, ge=1, le=4000)
    top_k: int = Field(5, ge=1, le=20)
    system_prompt: str | None = Field(None, max_length=4000)

    @field_validator("auto_open_delay")
    @classmethod
    def clamp_delay(cls, v: int) -> int:
        return max(0, min(60_000, v))

    @field_validator("scroll_trigger_percentage")
    @classmethod
    def clamp_percentage(cls, v: int) -> int:
        return max(0, min(100, v))


# --- Requests ---

class CreateBotRequest(BaseModel):
    workspace_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    settings: BotSettings = Field(default_factory=BotSettings)


class UpdateBotRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class TrainRequest(BaseModel):
    urls: list[HttpUrl] = Field(..., min_length=1, max_length=100)
    retrain: bool = False
    # Follow same-site links from each URL
    crawl: bool = False


class TrainContentRequest(BaseModel):
    content: str = Field(..., min_length=1)
    title: str = Field("Manual content", max_length=200)
    url: str | None = None
