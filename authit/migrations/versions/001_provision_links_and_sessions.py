"""Create provisioning link and session tables.

Revision ID: 001_provision_links_and_sessions
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_provision_links_and_sessions"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(bind, name: str) -> bool:
    return sa.inspect(bind).has_table(name)


def _has_index(bind, table_name: str, index_name: str) -> bool:
    indexes = sa.inspect(bind).get_indexes(table_name)
    return any(idx.get("name") == index_name for idx in indexes)


def upgrade() -> None:
    bind = op.get_bind()

    if not _has_table(bind, "provision_link"):
        op.create_table(
            "provision_link",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("max_uses", sa.Integer(), nullable=True),
            sa.Column("use_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("target_groups", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("use_count >= 0", name="ck_provision_link_use_count_nonneg"),
        )
    if _has_table(bind, "provision_link") and not _has_index(bind, "provision_link", "ix_provision_link_expires_at"):
        op.create_index("ix_provision_link_expires_at", "provision_link", ["expires_at"], unique=False)

    if not _has_table(bind, "auth_session"):
        op.create_table(
            "auth_session",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("user_data", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    if _has_table(bind, "auth_session") and not _has_index(bind, "auth_session", "ix_auth_session_expires_at"):
        op.create_index("ix_auth_session_expires_at", "auth_session", ["expires_at"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    if _has_table(bind, "auth_session"):
        op.drop_index("ix_auth_session_expires_at", table_name="auth_session")
        op.drop_table("auth_session")
    if _has_table(bind, "provision_link"):
        op.drop_index("ix_provision_link_expires_at", table_name="provision_link")
        op.drop_table("provision_link")
