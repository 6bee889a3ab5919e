"""
TimesEats — Async SQLAlchemy engine and session factory
"""
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from timeseats.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # Entities are copied out of ORM rows before commit, so nothing relies on
    # expiry; keeping loaded state avoids implicit IO after commit.
    return async_sessionmaker(bind, expire_on_commit=False, autoflush=False)


async def create_schema(bind: AsyncEngine) -> None:
    # Import models so every table is registered on Base.metadata.
    from timeseats import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
