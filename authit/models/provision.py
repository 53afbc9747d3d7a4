"""Provisioning link records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDv7Mixin


class ProvisionLink(Base, UUIDv7Mixin, TimestampMixin):
    """Use-limited, time-boxed capability to create an account.

    Exhausted links are kept (and rejected) rather than deleted so a
    rollback can hand the use back.
    """

    __tablename__ = "provision_link"
    __table_args__ = (
        CheckConstraint("use_count >= 0", name="ck_provision_link_use_count_nonneg"),
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    max_uses: Mapped[int | None] = mapped_column(Integer, default=None)
    use_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    target_groups: Mapped[list[str] | None] = mapped_column(JSON, default=None)
    created_by: Mapped[str | None] = mapped_column(String(255), default=None)

    @property
    def uses_remaining(self) -> int | None:
        if self.max_uses is None:
            return None
        return max(self.max_uses - (self.use_count or 0), 0)

    def __repr__(self) -> str:
        return f"<ProvisionLink {self.id} {self.use_count}/{self.max_uses}>"
