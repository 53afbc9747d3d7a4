"""Async database engine and session factory (SQLite by default)."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings

engine = create_async_engine(settings.resolved_database_url, echo=settings.echo_sql)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency that yields an async session."""
    async with async_session_factory() as session:
        yield session


async def init_models() -> None:
    """Create tables directly for SQLite (local dev); other backends use Alembic migrations."""
    if not settings.resolved_database_url.startswith("sqlite"):
        return
    from .models import Base

    settings.data_path.mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
