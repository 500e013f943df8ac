"""Pydantic schemas for GitHub issue requests."""

from typing import Literal

from pydantic import BaseModel, Field


class CreateIssueRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    body: str | None = None
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)


class UpdateIssueRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=256)
    body: str | None = None
    state: Literal["open", "closed"] | None = None
    labels: list[str] | None = None
    assignees: list[str] | None = None


class CommentRequest(BaseModel):
    body: str = Field(..., min_length=1)
