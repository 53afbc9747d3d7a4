"""Landing page for signed-in users."""

from __future__ import annotations

import html

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from .. import pages
from ..config import settings
from ..security.gate import CurrentSession, optional_session

router = APIRouter()


@router.get("/")
async def home(current: CurrentSession | None = Depends(optional_session)):
    if current is None:
        return RedirectResponse("/login", status_code=303)

    user = current.user
    if current.is_admin:
        note = "You can manage users, groups and provisioning links through the API."
    else:
        note = f"You are not a member of {settings.admin_group}; admin actions are unavailable."
    body = f"""<h1 class="title">Hello, {html.escape(user.display_name)}</h1>
      <p class="sub">Signed in as {html.escape(user.username)}</p>
      <p class="sub">{html.escape(note)}</p>
      <a class="btn" href="/auth/logout">Sign out</a>"""
    return pages.render_page("Home", body)
