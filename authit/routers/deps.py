"""Request-derived helpers shared by routers."""

from __future__ import annotations

from fastapi import Request

from ..config import settings


def _first(value: str) -> str:
    return value.split(",", 1)[0].strip()


def public_base_url(request: Request) -> str:
    """Base for generated links: configured URL, else what the proxy says we are."""
    if settings.public_url:
        return settings.public_url
    proto = _first(request.headers.get("x-forwarded-proto", "")) or request.url.scheme
    host = (
        _first(request.headers.get("x-forwarded-host", ""))
        or request.headers.get("host")
        or request.url.netloc
    )
    return f"{proto}://{host}"


def oauth_redirect_uri(request: Request) -> str:
    return settings.oauth_redirect_uri or f"{public_base_url(request)}/auth/callback"
