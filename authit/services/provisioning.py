"""Self-service provisioning: mint links, verify them, redeem them into Kanidm accounts.

Redemption spends a use *before* the account is created. If Kanidm rejects
the creation the use is handed back; if the outcome is unknown (timeout
mid-request) the use is kept and ``Uncertain`` is raised so an operator can
reconcile by hand.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import BadRequest, PartialFailure, Uncertain, UpstreamError, UpstreamTimeout
from ..kanidm.client import KanidmClient
from ..models.provision import ProvisionLink
from ..schemas.provision import ProvisionLinkInfo, ResetLink
from ..signing import provision_codec
from . import provision_svc

logger = logging.getLogger(__name__)


def parse_token(token: str) -> uuid.UUID:
    return provision_codec().verify(token)


def provision_url(base_url: str, link: ProvisionLink) -> str:
    return f"{base_url.rstrip('/')}/provision/{provision_codec().sign(link.id)}"


async def generate_provision_url(
    db: AsyncSession,
    base_url: str,
    duration_hours: int,
    max_uses: int | None = None,
    target_groups: list[str] | None = None,
    *,
    created_by: str | None = None,
) -> tuple[str, ProvisionLink]:
    """Create a link and return its public URL. Callers must already be admin."""
    if duration_hours < 1 or duration_hours > settings.provision_max_duration_hours:
        raise BadRequest(
            f"duration_hours must be between 1 and {settings.provision_max_duration_hours}"
        )
    if max_uses is not None and max_uses < 1:
        raise BadRequest("max_uses must be at least 1")

    link = await provision_svc.create_link(
        db,
        timedelta(hours=duration_hours),
        max_uses,
        target_groups,
        created_by=created_by,
    )
    return provision_url(base_url, link), link


async def verify_provision(db: AsyncSession, token: str) -> ProvisionLinkInfo:
    return await provision_svc.verify_link(db, parse_token(token))


async def _release_use(db: AsyncSession, link_id: uuid.UUID) -> None:
    try:
        await provision_svc.rollback_link(db, link_id)
    except Exception:
        logger.exception("Failed to roll back provisioning link %s", link_id)
        await db.rollback()


async def complete_provision(
    db: AsyncSession,
    idm: KanidmClient,
    token: str,
    name: str,
    display_name: str,
    email: str,
) -> ResetLink:
    """Redeem a link: create the person, join target groups, return a reset link."""
    link_id = parse_token(token)
    link = await provision_svc.consume_link(db, link_id)

    try:
        await idm.create_person(name, display_name, email)
    except UpstreamTimeout as exc:
        logger.error("Creation of %s via link %s timed out; keeping the spent use", name, link_id)
        raise Uncertain(
            f"Kanidm did not confirm creation of {name!r}: {exc.message}",
            person_name=name,
        ) from exc
    except UpstreamError:
        await _release_use(db, link_id)
        raise

    failed_groups = []
    for group in link.target_groups or []:
        try:
            await idm.add_user_to_group(name, group)
        except UpstreamError as exc:
            logger.error("Could not add %s to group %s: %s", name, group, exc.message)
            failed_groups.append(group)

    try:
        reset_link = await idm.generate_credential_reset_link(name)
    except UpstreamError as exc:
        raise PartialFailure(
            f"Account {name!r} was created but no credential reset link could be issued: {exc.message}",
            person_name=name,
            failed_groups=failed_groups,
        ) from exc

    if failed_groups:
        raise PartialFailure(
            f"Account {name!r} was created but could not be added to: {', '.join(failed_groups)}",
            person_name=name,
            failed_groups=failed_groups,
            reset_link=reset_link,
        )

    logger.info("Provisioned account %s via link %s", name, link_id)
    return reset_link
