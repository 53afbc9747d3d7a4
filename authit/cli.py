"""Authit CLI - serve the app, run migrations, manage provisioning links."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import settings
from .logs import configure_logging

app = typer.Typer(
    name="authit",
    help="Authit - Kanidm administration and self-service provisioning",
    no_args_is_help=True,
)
console = Console()

provision_app = typer.Typer(help="Provisioning link management")
app.add_typer(provision_app, name="provision")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override AUTHIT_LOG_LEVEL"),
):
    configure_logging(log_level or settings.log_level)


@app.command()
def serve(
    port: int = typer.Option(8080, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the Authit web app."""
    import uvicorn

    console.print(f"[bold cyan]Starting Authit at http://{host}:{port}[/bold cyan]")
    uvicorn.run("authit.app:app", host=host, port=port, reload=reload)


@app.command()
def migrate(revision: str = typer.Argument("head", help="Target revision")):
    """Apply Alembic migrations."""
    from alembic import command
    from alembic.config import Config

    settings.data_path.mkdir(parents=True, exist_ok=True)
    cfg = Config(str(Path(__file__).resolve().parent / "alembic.ini"))
    command.upgrade(cfg, revision)
    console.print(f"[green]Database upgraded to {revision}[/green]")


@app.command()
def version():
    """Show the Authit version."""
    console.print(f"authit {__version__}")


def _require_secret() -> None:
    if not settings.session_secret:
        console.print("[red]AUTHIT_SESSION_SECRET is not set; links cannot be signed.[/red]")
        raise typer.Exit(1)


@provision_app.command("create")
def provision_create(
    hours: int = typer.Option(24, "--hours", help="Link lifetime in hours"),
    max_uses: int = typer.Option(1, "--max-uses", help="Number of accounts the link may create (0 = unlimited)"),
    group: list[str] = typer.Option(None, "--group", "-g", help="Group to join new accounts to (repeatable)"),
    base_url: str = typer.Option(None, "--base-url", help="Override AUTHIT_AUTHIT_URL"),
):
    """Mint a provisioning link and print its URL."""
    _require_secret()
    link_base = base_url or settings.public_url
    if not link_base:
        console.print("[red]No public URL: set AUTHIT_AUTHIT_URL or pass --base-url.[/red]")
        raise typer.Exit(1)

    from .database import async_session_factory, init_models
    from .errors import AuthitError
    from .services import provisioning

    async def _create():
        await init_models()
        async with async_session_factory() as db:
            return await provisioning.generate_provision_url(
                db,
                link_base,
                hours,
                max_uses or None,
                group or None,
                created_by="cli",
            )

    try:
        url, link = asyncio.run(_create())
    except AuthitError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(1)

    limit = "unlimited" if link.max_uses is None else str(link.max_uses)
    console.print(f"[dim]expires {link.expires_at:%Y-%m-%d %H:%M} UTC, uses: {limit}[/dim]")
    console.print(url)


@provision_app.command("list")
def provision_list():
    """List provisioning links and their status."""
    from .database import async_session_factory, init_models
    from .services import provision_svc

    async def _list():
        await init_models()
        async with async_session_factory() as db:
            return await provision_svc.list_links(db)

    links = asyncio.run(_list())
    if not links:
        console.print("[dim]No provisioning links.[/dim]")
        return

    table = Table(title="Provisioning links")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Uses")
    table.add_column("Expires")
    table.add_column("Groups")
    table.add_column("Created by")
    colors = {"active": "green", "expired": "yellow", "exhausted": "red"}
    for link in links:
        uses = f"{link.use_count}/{link.max_uses if link.max_uses is not None else '∞'}"
        table.add_row(
            link.id,
            f"[{colors.get(link.status, 'white')}]{link.status}[/]",
            uses,
            f"{link.expires_at:%Y-%m-%d %H:%M}",
            ", ".join(link.target_groups) or "-",
            link.created_by or "-",
        )
    console.print(table)


@provision_app.command("purge")
def provision_purge():
    """Delete expired and exhausted provisioning links."""
    from .database import async_session_factory, init_models
    from .services import provision_svc

    async def _purge():
        await init_models()
        async with async_session_factory() as db:
            return await provision_svc.purge_links(db)

    purged = asyncio.run(_purge())
    console.print(f"[green]Purged {purged} link(s)[/green]")


if __name__ == "__main__":
    app()
