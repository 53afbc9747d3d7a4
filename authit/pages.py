"""Minimal server-rendered pages (login, provisioning, dashboard)."""

from __future__ import annotations

import html

from fastapi.responses import HTMLResponse

from .config import settings

_STYLE = """
    body { font-family: system-ui, sans-serif; background:#0b1020; color:#e5e7eb; margin:0; }
    .wrap { min-height:100vh; display:flex; align-items:center; justify-content:center; padding:1rem; }
    .card { width:100%; max-width:460px; background:#111827; border:1px solid #1f2937; border-radius:12px; padding:1.25rem; }
    .title { margin:0 0 .25rem 0; font-size:1.2rem; }
    .sub { margin:0 0 1rem 0; color:#9ca3af; font-size:.9rem; }
    .error { color:#fca5a5; margin-bottom:1rem; }
    label { display:block; margin:.75rem 0 .25rem 0; font-size:.9rem; }
    input { width:100%; box-sizing:border-box; padding:.6rem .7rem; border-radius:8px; border:1px solid #374151; background:#0f172a; color:#f3f4f6; }
    button, .btn { display:inline-block; margin-top:1rem; width:100%; box-sizing:border-box; padding:.65rem .8rem; border:0; border-radius:8px; background:#2563eb; color:#fff; font-weight:600; cursor:pointer; text-align:center; text-decoration:none; }
    a { color:#93c5fd; }
"""


def render_page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    """Wrap ``body`` (already escaped) in the shared card layout."""
    page = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{html.escape(title)} - {html.escape(settings.app_title)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="wrap">
    <div class="card">
      {body}
    </div>
  </div>
</body>
</html>"""
    return HTMLResponse(page, status_code=status_code)


def error_html(message: str | None) -> str:
    if not message:
        return ""
    return f"<p class='error'>{html.escape(message)}</p>"


def login_page(error: str | None = None) -> HTMLResponse:
    body = f"""<h1 class="title">Sign In</h1>
      <p class="sub">{html.escape(settings.app_title)} administration</p>
      {error_html(error)}
      <a class="btn" href="/auth/login">Sign in with Kanidm</a>"""
    return render_page("Sign In", body)


def provision_form_page(
    token: str,
    *,
    uses_remaining: int | None = None,
    error: str | None = None,
    values: dict[str, str] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    values = values or {}
    remaining = ""
    if uses_remaining is not None:
        remaining = f"<p class='sub'>This link can be used {uses_remaining} more time(s).</p>"
    body = f"""<h1 class="title">Create your account</h1>
      {remaining}
      {error_html(error)}
      <form method="post" action="/provision/{html.escape(token)}">
        <label for="name">Username</label>
        <input id="name" name="name" required maxlength="64" autocomplete="username" value="{html.escape(values.get('name', ''))}">
        <label for="display_name">Display name</label>
        <input id="display_name" name="display_name" required maxlength="255" value="{html.escape(values.get('display_name', ''))}">
        <label for="email">Email</label>
        <input id="email" name="email" type="email" required maxlength="255" autocomplete="email" value="{html.escape(values.get('email', ''))}">
        <button type="submit">Create account</button>
      </form>"""
    return render_page("Create account", body, status_code=status_code)


def provision_done_page(reset_url: str | None, note: str | None = None, status_code: int = 200) -> HTMLResponse:
    parts = ["<h1 class='title'>Account created</h1>"]
    if note:
        parts.append(error_html(note))
    if reset_url:
        parts.append("<p class='sub'>Set up your credentials to finish. This link is shown only once.</p>")
        parts.append(f"<a class='btn' href='{html.escape(reset_url)}'>Set up credentials</a>")
    return render_page("Account created", "\n      ".join(parts), status_code=status_code)


def message_page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    body = f"<h1 class='title'>{html.escape(title)}</h1>\n      <p class='sub'>{html.escape(message)}</p>"
    return render_page(title, body, status_code=status_code)
