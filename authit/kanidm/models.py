"""Projections of Kanidm attribute-bag entries."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


def _attrs(entry: dict[str, Any]) -> dict[str, list[str]]:
    attrs = entry.get("attrs") if isinstance(entry, dict) else None
    if not isinstance(attrs, dict):
        raise ValueError("entry has no attrs")
    return attrs


def _first(attrs: dict[str, list[str]], name: str) -> str | None:
    values = attrs.get(name) or []
    return values[0] if values else None


def _required(attrs: dict[str, list[str]], name: str) -> str:
    value = _first(attrs, name)
    if not value:
        raise ValueError(f"missing {name}")
    return value


class Person(BaseModel):
    uuid: str
    name: str
    display_name: str
    mail: str | None = None
    groups: list[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "Person":
        """Raises ``ValueError`` when ``uuid`` or ``name`` is missing."""
        attrs = _attrs(entry)
        return cls(
            uuid=_required(attrs, "uuid"),
            name=_required(attrs, "name"),
            display_name=_first(attrs, "displayname") or "Unknown",
            mail=_first(attrs, "mail"),
            groups=list(attrs.get("memberof") or []),
        )


class Group(BaseModel):
    uuid: str
    name: str
    members: list[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "Group":
        attrs = _attrs(entry)
        return cls(
            uuid=_required(attrs, "uuid"),
            name=_required(attrs, "name"),
            members=list(attrs.get("member") or []),
        )
