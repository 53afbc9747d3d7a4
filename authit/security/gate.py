"""Session cookie handling and the admin authorization gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..errors import Forbidden, InvalidToken, NotFound, Unauthenticated
from ..models.session import AuthSession
from ..schemas.users import UserData
from ..services import session_svc

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "authit_session"


@dataclass
class CurrentSession:
    session: AuthSession
    user: UserData

    @property
    def is_admin(self) -> bool:
        return settings.admin_group in self.user.groups


def set_session_cookie(response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def session_cookie(request: Request) -> str:
    return request.cookies.get(SESSION_COOKIE_NAME, "")


async def resolve_session(request: Request, db: AsyncSession = Depends(get_db)) -> CurrentSession:
    """Dependency: the signed-in session, or ``Unauthenticated``."""
    token = session_cookie(request)
    if not token:
        raise Unauthenticated()
    try:
        session = await session_svc.find_by_token(db, token)
    except (InvalidToken, NotFound) as exc:
        raise Unauthenticated() from exc

    await session_svc.touch_session(db, session)
    current = CurrentSession(session=session, user=session_svc.session_user(session))
    request.state.current_session = current
    return current


async def optional_session(request: Request, db: AsyncSession = Depends(get_db)) -> CurrentSession | None:
    try:
        return await resolve_session(request, db)
    except Unauthenticated:
        return None


async def require_admin(current: CurrentSession = Depends(resolve_session)) -> CurrentSession:
    """Dependency: a session whose groups include the configured admin group."""
    if not current.is_admin:
        logger.warning(
            "Admin check failed for %s (required group %r)", current.user.username, settings.admin_group
        )
        raise Forbidden(f"{current.user.username} is not a member of {settings.admin_group}")
    return current


def public_surface(request: Request) -> None:
    """Dependency: errors on this route are rendered with their public message."""
    request.state.public_surface = True
