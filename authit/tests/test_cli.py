"""Tests for the authit CLI."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from typer.testing import CliRunner

from authit import __version__, database
from authit.cli import app
from authit.models.provision import ProvisionLink


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """Point the CLI at a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "async_session_factory", factory)
    monkeypatch.setattr(database.settings, "data_dir", str(tmp_path))
    return factory


def _links(factory) -> list[ProvisionLink]:
    async def _fetch():
        async with factory() as db:
            return list((await db.execute(select(ProvisionLink))).scalars().all())

    return asyncio.run(_fetch())


class TestVersion:
    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestProvisionCreate:
    def test_create_prints_url(self, cli_runner, cli_db):
        result = cli_runner.invoke(
            app, ["provision", "create", "--hours", "2", "--max-uses", "3", "--group", "staff", "-g", "vpn"]
        )
        assert result.exit_code == 0, result.output
        assert "http://authit.test/provision/" in result.output

        links = _links(cli_db)
        assert len(links) == 1
        assert links[0].max_uses == 3
        assert links[0].target_groups == ["staff", "vpn"]
        assert links[0].created_by == "cli"

    def test_zero_max_uses_means_unlimited(self, cli_runner, cli_db):
        result = cli_runner.invoke(app, ["provision", "create", "--max-uses", "0"])
        assert result.exit_code == 0, result.output
        assert "unlimited" in result.output
        assert _links(cli_db)[0].max_uses is None

    def test_rejects_out_of_range_duration(self, cli_runner, cli_db):
        result = cli_runner.invoke(app, ["provision", "create", "--hours", "0"])
        assert result.exit_code == 1
        assert _links(cli_db) == []

    def test_requires_signing_secret(self, cli_runner, cli_db, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "session_secret", "")
        result = cli_runner.invoke(app, ["provision", "create"])
        assert result.exit_code == 1
        assert "AUTHIT_SESSION_SECRET" in result.output

    def test_requires_public_url(self, cli_runner, cli_db, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "authit_url", "")
        result = cli_runner.invoke(app, ["provision", "create"])
        assert result.exit_code == 1
        assert "--base-url" in result.output

        result = cli_runner.invoke(app, ["provision", "create", "--base-url", "https://authit.example.org"])
        assert result.exit_code == 0, result.output
        assert "https://authit.example.org/provision/" in result.output


class TestProvisionListAndPurge:
    def test_list_empty(self, cli_runner, cli_db):
        result = cli_runner.invoke(app, ["provision", "list"])
        assert result.exit_code == 0
        assert "No provisioning links" in result.output

    def test_purge_keeps_live_links(self, cli_runner, cli_db):
        cli_runner.invoke(app, ["provision", "create"])
        result = cli_runner.invoke(app, ["provision", "purge"])
        assert result.exit_code == 0
        assert "Purged 0 link(s)" in result.output
        assert len(_links(cli_db)) == 1
