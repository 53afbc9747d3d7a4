"""Server-side session store keyed by signed cookie tokens."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import InvalidToken, NotFound
from ..ids import new_uuid7
from ..models.session import AuthSession
from ..schemas.users import UserData
from ..signing import session_codec

logger = logging.getLogger(__name__)

TOUCH_INTERVAL_SECONDS = 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def session_token(session: AuthSession) -> str:
    return session_codec().sign(session.id)


def session_user(session: AuthSession) -> UserData:
    return UserData.from_storage(session.user_data)


async def create_session(
    db: AsyncSession,
    user_data: UserData,
    *,
    ttl_seconds: int | None = None,
) -> AuthSession:
    now = _utcnow()
    ttl = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
    session = AuthSession(
        id=new_uuid7(),
        user_data=user_data.to_storage(),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )
    db.add(session)
    await db.commit()
    logger.info("Created session %s for %s", session.id, user_data.username)
    return session


async def find_session(db: AsyncSession, session_id: uuid.UUID) -> AuthSession:
    """Look up a live session. Expired rows are deleted and reported as missing."""
    session = await db.get(AuthSession, session_id, populate_existing=True)
    if session is None:
        raise NotFound("session not found")

    now = _utcnow()
    if now >= _as_utc(session.expires_at):
        await db.delete(session)
        await db.commit()
        raise NotFound("session expired")
    return session


async def find_by_token(db: AsyncSession, token: str) -> AuthSession:
    session_id = session_codec().verify(token)
    return await find_session(db, session_id)


async def touch_session(db: AsyncSession, session: AuthSession) -> bool:
    """Bump ``last_seen_at``, at most once per interval."""
    now = _utcnow()
    last = _as_utc(session.last_seen_at)
    if last is not None and (now - last).total_seconds() < TOUCH_INTERVAL_SECONDS:
        return False
    session.last_seen_at = now
    await db.commit()
    return True


async def delete_session(db: AsyncSession, session_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(AuthSession)
        .where(AuthSession.id == session_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def delete_by_token(db: AsyncSession, token: str | None) -> bool:
    """Best-effort logout. A bad or unknown token is not an error."""
    if not token:
        return False
    try:
        session_id = session_codec().verify(token)
    except InvalidToken:
        return False
    return await delete_session(db, session_id)


async def purge_sessions(db: AsyncSession, *, now: datetime | None = None) -> int:
    stmt = (
        delete(AuthSession)
        .where(AuthSession.expires_at <= (now or _utcnow()))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount or 0
