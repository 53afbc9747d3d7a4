"""Pydantic models for sessions and the user/group admin API."""

from __future__ import annotations

import json

from pydantic import BaseModel, Field, SecretStr


class UserData(BaseModel):
    """Identity claims stored server-side for a login session."""

    user_id: str
    username: str
    display_name: str
    groups: list[str] = Field(default_factory=list)
    access_token: SecretStr = SecretStr("")

    def to_storage(self) -> str:
        data = self.model_dump()
        data["access_token"] = self.access_token.get_secret_value()
        return json.dumps(data, separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_storage(cls, raw: str) -> "UserData":
        return cls.model_validate_json(raw)

    def public(self) -> "UserSession":
        return UserSession(
            user_id=self.user_id,
            username=self.username,
            display_name=self.display_name,
            groups=list(self.groups),
        )


class UserSession(BaseModel):
    """Client-visible view of the signed-in user. Carries no secrets."""

    user_id: str
    username: str
    display_name: str
    groups: list[str] = Field(default_factory=list)


class GroupMembershipChange(BaseModel):
    user_id: str
    group_id: str
    add: bool


class UserRef(BaseModel):
    user_id: str


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
