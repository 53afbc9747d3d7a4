"""JSON API: current user, Kanidm user/group admin, provisioning links."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..errors import BadRequest, NotFound
from ..kanidm.client import KanidmClient, get_kanidm_client
from ..kanidm.models import Group, Person
from ..schemas.provision import (
    ProvisionComplete,
    ProvisionGenerate,
    ProvisionLinkInfo,
    ProvisionLinkSummary,
    ProvisionRevoke,
    ProvisionUrl,
    ProvisionVerify,
    ResetLink,
)
from ..schemas.users import GroupMembershipChange, UserCreate, UserRef, UserSession
from ..security.gate import CurrentSession, optional_session, public_surface, require_admin
from ..services import provision_svc, provisioning
from .deps import public_base_url

router = APIRouter(prefix="/api")


@router.post("/current-user", response_model=UserSession | None)
async def current_user(current: CurrentSession | None = Depends(optional_session)):
    if current is None:
        return None
    return current.user.public()


# Users + groups (admin only)


@router.post("/users", response_model=list[Person])
async def list_users(
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    return await idm.list_persons()


@router.post("/groups", response_model=list[Group])
async def list_groups(
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    return await idm.list_groups()


@router.post("/users/groups")
async def update_user_group(
    body: GroupMembershipChange,
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    if body.add:
        await idm.add_user_to_group(body.user_id, body.group_id)
    else:
        await idm.remove_user_from_group(body.user_id, body.group_id)
    return {"ok": True}


@router.post("/users/reset-link", response_model=ResetLink)
async def generate_reset_link(
    body: UserRef,
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    return await idm.generate_credential_reset_link(body.user_id)


@router.post("/users/delete")
async def delete_user(
    body: UserRef,
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    await idm.delete_person(body.user_id)
    return {"ok": True}


@router.post("/users/create")
async def create_user(
    body: UserCreate,
    _: CurrentSession = Depends(require_admin),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    await idm.create_person(body.name, body.display_name, body.email)
    return {"ok": True}


# Provisioning links


@router.post("/provision/generate", response_model=ProvisionUrl)
async def generate_provision(
    body: ProvisionGenerate,
    request: Request,
    admin: CurrentSession = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    url, link = await provisioning.generate_provision_url(
        db,
        public_base_url(request),
        body.duration_hours,
        body.max_uses,
        body.target_groups,
        created_by=admin.user.username,
    )
    return ProvisionUrl(url=url, expires_at=provision_svc.link_info(link).expires_at)


@router.post("/provision/list", response_model=list[ProvisionLinkSummary])
async def list_provision_links(
    _: CurrentSession = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await provision_svc.list_links(db)


@router.post("/provision/revoke")
async def revoke_provision_link(
    body: ProvisionRevoke,
    _: CurrentSession = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        link_id = uuid.UUID(body.id)
    except ValueError as exc:
        raise BadRequest("id is not a valid link id") from exc
    if not await provision_svc.delete_link(db, link_id):
        raise NotFound("provisioning link not found")
    return {"ok": True}


@router.post(
    "/provision/verify",
    response_model=ProvisionLinkInfo,
    dependencies=[Depends(public_surface)],
)
async def verify_provision(body: ProvisionVerify, db: AsyncSession = Depends(get_db)):
    return await provisioning.verify_provision(db, body.token)


@router.post(
    "/provision/complete",
    response_model=ResetLink,
    dependencies=[Depends(public_surface)],
)
async def complete_provision(
    body: ProvisionComplete,
    db: AsyncSession = Depends(get_db),
    idm: KanidmClient = Depends(get_kanidm_client),
):
    return await provisioning.complete_provision(
        db, idm, body.token, body.name, body.display_name, body.email
    )
