"""Server-side login sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDv7Mixin


class AuthSession(Base, UUIDv7Mixin):
    """Persisted session referenced by the signed session cookie."""

    __tablename__ = "auth_session"

    # JSON claims, including the upstream access token. Never sent to clients.
    user_data: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthSession {self.id}>"
