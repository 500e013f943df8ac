"""Pydantic schemas for API key requests."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from sitebot.api_keys.keys import ADMIN_PERMISSIONS, DEFAULT_PERMISSIONS


class CreateApiKeyRequest(BaseModel):
    workspace_id: str
    name: str = Field(min_length=1, max_length=100)
    permissions: list[str] = Field(default_factory=lambda: list(DEFAULT_PERMISSIONS))
    expires_at: datetime | None = None

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, value: list[str]) -> list[str]:
        resources = {p.split(":")[0] for p in ADMIN_PERMISSIONS}
        for permission in value:
            resource, _, action = permission.partition(":")
            if resource not in resources or not action:
                raise ValueError(f"Unknown permission: {permission}")
        return value
