"""OAuth2 authorization-code + PKCE login against Kanidm."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import InvalidState, UpstreamError
from ..models.session import AuthSession
from ..schemas.users import UserData
from ..security.pkce import PkceVerifierCache, code_challenge, generate_state, generate_verifier, pkce_cache
from . import session_svc

logger = logging.getLogger(__name__)

SCOPES = ("openid", "profile", "email", "groups")


def authorize_url(state: str, challenge: str, redirect_uri: str) -> str:
    params = {
        "response_type": "code",
        "client_id": settings.oauth_client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(SCOPES),
        "state": state,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
    }
    return f"{settings.oauth_authorize_url}?{urlencode(params)}"


async def begin_login(redirect_uri: str, cache: PkceVerifierCache = pkce_cache) -> str:
    """Register a pending login and return the provider URL to redirect to."""
    state = generate_state()
    verifier = generate_verifier()
    await cache.put(state, verifier)
    return authorize_url(state, code_challenge(verifier), redirect_uri)


async def exchange_code(http: httpx.AsyncClient, code: str, verifier: str, redirect_uri: str) -> str:
    """Trade an authorization code for an access token."""
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": settings.oauth_client_id,
        "code_verifier": verifier,
    }
    if settings.oauth_client_secret:
        data["client_secret"] = settings.oauth_client_secret

    try:
        response = await http.post(
            settings.oauth_token_url,
            data=data,
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Token exchange failed: {type(exc).__name__}") from exc

    if response.status_code != 200:
        logger.error("Token exchange failed (%s): %s", response.status_code, response.text[:500])
        raise UpstreamError(
            f"Token exchange failed: {response.status_code}",
            upstream_status=response.status_code,
            body=response.text[:500],
        )

    try:
        token = response.json().get("access_token")
    except ValueError as exc:
        raise UpstreamError("Token endpoint returned invalid JSON") from exc
    if not token:
        raise UpstreamError("Token endpoint returned no access_token")
    return token


async def fetch_userinfo(http: httpx.AsyncClient, access_token: str) -> UserData:
    try:
        response = await http.get(
            settings.oauth_userinfo_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Userinfo request failed: {type(exc).__name__}") from exc

    if response.status_code != 200:
        logger.error("Userinfo request failed (%s): %s", response.status_code, response.text[:500])
        raise UpstreamError(
            f"Userinfo request failed: {response.status_code}",
            upstream_status=response.status_code,
            body=response.text[:500],
        )

    try:
        claims = response.json()
    except ValueError as exc:
        raise UpstreamError("Userinfo endpoint returned invalid JSON") from exc
    if not isinstance(claims, dict) or not claims.get("sub"):
        raise UpstreamError("Userinfo response is missing 'sub'")

    username = claims.get("preferred_username") or claims["sub"]
    return UserData(
        user_id=claims["sub"],
        username=username,
        display_name=claims.get("name") or username,
        groups=[g for g in claims.get("groups") or [] if isinstance(g, str)],
        access_token=access_token,
    )


async def complete_login(
    db: AsyncSession,
    http: httpx.AsyncClient,
    code: str,
    state: str,
    redirect_uri: str,
    cache: PkceVerifierCache = pkce_cache,
) -> AuthSession:
    """Finish the callback leg. Nothing is persisted unless every step succeeds."""
    verifier = await cache.pop(state) if state else None
    if verifier is None:
        raise InvalidState()
    if not code:
        raise InvalidState("authorization code missing from callback")

    access_token = await exchange_code(http, code, verifier, redirect_uri)
    user = await fetch_userinfo(http, access_token)
    return await session_svc.create_session(db, user)


async def get_oauth_http():
    """FastAPI dependency yielding the HTTP client used for provider calls."""
    async with httpx.AsyncClient(timeout=settings.kanidm_timeout_seconds) as client:
        yield client
