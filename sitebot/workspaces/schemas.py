"""Pydantic schemas for workspace requests."""

from typing import Literal

from pydantic import BaseModel, Field


class CreateWorkspaceRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class UpdateWorkspaceRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None


class AddMemberRequest(BaseModel):
    user_id: str
    role: Literal["admin", "member"] = "member"
