"""Smoke tests for Authit Alembic migrations."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from authit.config import settings


def _config() -> Config:
    package_root = Path(__file__).resolve().parents[1]
    return Config(str(package_root / "alembic.ini"))


def test_alembic_upgrade_creates_tables(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "authit_migrations.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")

    command.upgrade(_config(), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        link_indexes = {idx["name"] for idx in inspector.get_indexes("provision_link")}
        link_columns = {col["name"] for col in inspector.get_columns("provision_link")}
    finally:
        engine.dispose()

    assert {"provision_link", "auth_session"} <= tables
    assert "ix_provision_link_expires_at" in link_indexes
    assert {"expires_at", "max_uses", "use_count", "target_groups"} <= link_columns


def test_alembic_downgrade_drops_tables(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "authit_downgrade.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")

    cfg = _config()
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()

    assert "provision_link" not in tables
    assert "auth_session" not in tables
