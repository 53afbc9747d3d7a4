"""Login page and the OAuth2/PKCE login/callback/logout routes."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from .. import pages
from ..database import get_db
from ..errors import AuthitError
from ..security.gate import (
    CurrentSession,
    clear_session_cookie,
    optional_session,
    session_cookie,
    set_session_cookie,
)
from ..services import oauth_svc, session_svc
from .deps import oauth_redirect_uri

logger = logging.getLogger(__name__)

router = APIRouter()


def _login_redirect(error: str | None = None) -> RedirectResponse:
    target = "/login"
    if error:
        target = f"{target}?{urlencode({'error': error})}"
    return RedirectResponse(target, status_code=303)


@router.get("/login")
async def login_page(error: str = "", current: CurrentSession | None = Depends(optional_session)):
    if current is not None:
        return RedirectResponse("/", status_code=303)
    return pages.login_page(error or None)


@router.get("/auth/login")
async def login(request: Request):
    return RedirectResponse(await oauth_svc.begin_login(oauth_redirect_uri(request)), status_code=303)


@router.get("/auth/callback")
async def callback(
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    error_description: str = "",
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(oauth_svc.get_oauth_http),
):
    if error:
        logger.warning("Provider returned error on callback: %s", error)
        return _login_redirect(error_description or f"Sign-in was rejected ({error}).")

    try:
        session = await oauth_svc.complete_login(db, http, code, state, oauth_redirect_uri(request))
    except AuthitError as exc:
        logger.warning("Login callback failed: %s", exc.message)
        return _login_redirect(exc.public_message)

    response = RedirectResponse("/", status_code=303)
    set_session_cookie(response, session_svc.session_token(session))
    return response


@router.get("/auth/logout")
async def logout(request: Request, db: AsyncSession = Depends(get_db)):
    try:
        await session_svc.delete_by_token(db, session_cookie(request))
    except Exception:
        logger.exception("Failed to delete session on logout")
    response = RedirectResponse("/login", status_code=303)
    clear_session_cookie(response)
    return response
