"""Public self-service signup pages behind provisioning links."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession

from .. import pages
from ..database import get_db
from ..errors import AuthitError, InvalidToken, PartialFailure, ProvisionLinkError
from ..kanidm.client import KanidmClient, get_kanidm_client
from ..security.gate import public_surface
from ..services import provisioning

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/provision", dependencies=[Depends(public_surface)])


def _dead_link(exc: AuthitError):
    return pages.message_page("Link unavailable", exc.public_message, status_code=exc.http_status(public=True))


@router.get("/{token}")
async def provision_form(token: str, db: AsyncSession = Depends(get_db)):
    try:
        info = await provisioning.verify_provision(db, token)
    except (InvalidToken, ProvisionLinkError) as exc:
        return _dead_link(exc)
    return pages.provision_form_page(token, uses_remaining=info.uses_remaining)


@router.post("/{token}")
async def provision_submit(
    token: str,
    name: str = Form(...),
    display_name: str = Form(...),
    email: str = Form(...),
    db: AsyncSession = Depends(get_db),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    values = {"name": name, "display_name": display_name, "email": email}
    try:
        reset_link = await provisioning.complete_provision(
            db, idm, token, name.strip(), display_name.strip(), email.strip()
        )
    except (InvalidToken, ProvisionLinkError) as exc:
        return _dead_link(exc)
    except PartialFailure as exc:
        url = exc.reset_link.url if exc.reset_link is not None else None
        return pages.provision_done_page(url, note=exc.public_message, status_code=exc.status_code)
    except AuthitError as exc:
        logger.warning("Provisioning via link failed: %s", exc.message)
        return pages.provision_form_page(
            token, error=exc.public_message, values=values, status_code=exc.status_code
        )
    return pages.provision_done_page(reset_link.url)
