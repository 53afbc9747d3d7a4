"""Provisioning link store - create, verify, consume, rollback, purge."""

from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import LinkExhausted, LinkExpired, LinkNotFound
from ..ids import new_uuid7, uuid7_timestamp
from ..models.provision import ProvisionLink
from ..schemas.provision import ProvisionLinkInfo, ProvisionLinkSummary

logger = logging.getLogger(__name__)

# Exhausted links stay around this long so an in-flight rollback still finds them.
EXHAUSTED_GRACE = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(link: ProvisionLink, now: datetime | None = None) -> bool:
    return (now or _utcnow()) >= _as_utc(link.expires_at)


def is_exhausted(link: ProvisionLink) -> bool:
    return link.max_uses is not None and link.use_count >= link.max_uses


def link_status(link: ProvisionLink, now: datetime | None = None) -> str:
    if is_expired(link, now):
        return "expired"
    if is_exhausted(link):
        return "exhausted"
    return "active"


def link_info(link: ProvisionLink) -> ProvisionLinkInfo:
    return ProvisionLinkInfo(
        expires_at=_as_utc(link.expires_at),
        max_uses=link.max_uses,
        use_count=link.use_count,
        uses_remaining=link.uses_remaining,
        target_groups=list(link.target_groups or []),
    )


async def create_link(
    db: AsyncSession,
    duration: timedelta,
    max_uses: int | None = None,
    target_groups: list[str] | None = None,
    *,
    created_by: str | None = None,
) -> ProvisionLink:
    """Persist a fresh link. ``expires_at`` is anchored on the id's own timestamp."""
    if duration <= timedelta(0):
        raise ValueError("duration must be positive")
    if max_uses is not None and max_uses < 1:
        raise ValueError("max_uses must be at least 1")

    link_id = new_uuid7()
    groups = [g.strip() for g in (target_groups or []) if g and g.strip()]
    link = ProvisionLink(
        id=link_id,
        expires_at=uuid7_timestamp(link_id) + duration,
        max_uses=max_uses,
        use_count=0,
        target_groups=groups or None,
        created_by=created_by,
    )
    db.add(link)
    await db.commit()
    await db.refresh(link)
    logger.info("Created provisioning link %s (max_uses=%s, expires_at=%s)", link.id, max_uses, link.expires_at)

    if random.random() < settings.provision_purge_probability:
        try:
            await purge_links(db)
        except Exception:
            logger.exception("Opportunistic provisioning link purge failed")
            await db.rollback()

    return link


async def get_link(db: AsyncSession, link_id: uuid.UUID) -> ProvisionLink | None:
    return await db.get(ProvisionLink, link_id, populate_existing=True)


async def verify_link(db: AsyncSession, link_id: uuid.UUID) -> ProvisionLinkInfo:
    """Read-only validity check used before rendering the signup form."""
    link = await get_link(db, link_id)
    if link is None:
        raise LinkNotFound()
    if is_expired(link):
        raise LinkExpired()
    if is_exhausted(link):
        raise LinkExhausted()
    return link_info(link)


async def consume_link(db: AsyncSession, link_id: uuid.UUID) -> ProvisionLink:
    """Spend one use of a link.

    The increment is a single conditional UPDATE bounded by ``max_uses``;
    losing a race on the last use surfaces as ``LinkExhausted``.
    """
    link = await get_link(db, link_id)
    if link is None:
        raise LinkNotFound()
    if is_expired(link):
        raise LinkExpired()
    if is_exhausted(link):
        raise LinkExhausted()

    stmt = (
        update(ProvisionLink)
        .where(
            ProvisionLink.id == link_id,
            ProvisionLink.expires_at > _utcnow(),
            or_(
                ProvisionLink.max_uses.is_(None),
                ProvisionLink.use_count < ProvisionLink.max_uses,
            ),
        )
        .values(use_count=ProvisionLink.use_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        raise LinkExhausted()

    await db.commit()
    await db.refresh(link)
    return link


async def rollback_link(db: AsyncSession, link_id: uuid.UUID) -> bool:
    """Hand one use back. Never drops below zero; returns False if nothing changed."""
    stmt = (
        update(ProvisionLink)
        .where(ProvisionLink.id == link_id, ProvisionLink.use_count > 0)
        .values(use_count=ProvisionLink.use_count - 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    restored = result.rowcount > 0
    if restored:
        logger.info("Rolled back one use of provisioning link %s", link_id)
    else:
        logger.warning("Rollback of provisioning link %s changed nothing", link_id)
    return restored


async def list_links(db: AsyncSession) -> list[ProvisionLinkSummary]:
    """All links, newest first, with derived status."""
    stmt = (
        select(ProvisionLink)
        .order_by(ProvisionLink.id.desc())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    now = _utcnow()
    summaries = []
    for link in result.scalars().all():
        info = link_info(link)
        summaries.append(
            ProvisionLinkSummary(
                **info.model_dump(),
                id=link.id.hex,
                created_at=_as_utc(link.created_at),
                created_by=link.created_by,
                status=link_status(link, now),
            )
        )
    return summaries


async def delete_link(db: AsyncSession, link_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(ProvisionLink)
        .where(ProvisionLink.id == link_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Revoked provisioning link %s", link_id)
    return deleted


async def purge_links(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    exhausted_grace: timedelta = EXHAUSTED_GRACE,
) -> int:
    """Delete expired links, and exhausted ones idle for longer than the grace period."""
    now = now or _utcnow()
    stmt = delete(ProvisionLink).where(
        or_(
            ProvisionLink.expires_at <= now,
            and_(
                ProvisionLink.max_uses.is_not(None),
                ProvisionLink.use_count >= ProvisionLink.max_uses,
                ProvisionLink.updated_at <= now - exhausted_grace,
            ),
        )
    ).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    await db.commit()
    purged = result.rowcount or 0
    if purged:
        logger.info("Purged %d dead provisioning links", purged)
    return purged
