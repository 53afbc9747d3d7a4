"""Pydantic models for the provisioning API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ResetLink(BaseModel):
    url: str
    expires_at: datetime | None = None


class ProvisionLinkInfo(BaseModel):
    expires_at: datetime
    max_uses: int | None = None
    use_count: int = 0
    uses_remaining: int | None = None
    target_groups: list[str] = Field(default_factory=list)


class ProvisionLinkSummary(ProvisionLinkInfo):
    id: str
    created_at: datetime | None = None
    created_by: str | None = None
    status: str  # active/expired/exhausted


class ProvisionGenerate(BaseModel):
    duration_hours: int = Field(ge=1)
    max_uses: int | None = Field(default=None, ge=1)
    target_groups: list[str] | None = None


class ProvisionUrl(BaseModel):
    url: str
    expires_at: datetime


class ProvisionVerify(BaseModel):
    token: str


class ProvisionComplete(BaseModel):
    token: str
    name: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)


class ProvisionRevoke(BaseModel):
    id: str
