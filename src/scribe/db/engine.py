"""Async SQLAlchemy engine and session creation."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from scribe.config import settings


def create_db_engine(url: str | None = None) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    url = url or settings.effective_database_url
    kwargs: dict = {"echo": False}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create every table; used for SQLite where there are no migrations."""
    from scribe.db.base import Base
    import scribe.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
