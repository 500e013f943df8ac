"""Pydantic schemas for billing requests."""

from typing import Literal

from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    workspace_id: str
    plan: Literal["pro", "enterprise"]
    success_url: str | None = None
    cancel_url: str | None = None


class PortalRequest(BaseModel):
    workspace_id: str
    return_url: str | None = None


class WorkspaceRef(BaseModel):
    workspace_id: str
