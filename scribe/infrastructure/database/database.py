from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from ...config import Settings

# Register table models on SQLModel.metadata
from . import models  # noqa: F401


def create_engine_for(app_settings: Settings) -> AsyncEngine:
    """Create async engine with connection pooling suited to the backend."""
    async_url = app_settings.async_database_url
    engine_kwargs: dict[str, int | bool]

    if async_url.startswith("sqlite+aiosqlite"):
        engine_kwargs = {}
    elif async_url.startswith("postgresql+asyncpg"):
        engine_kwargs = {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_recycle": 3600,  # Recycle connections every hour
            "pool_pre_ping": True,  # Validate connections before use
        }
    else:
        raise ValueError(f"Unsupported database URL: {async_url}")

    return create_async_engine(async_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_async_db(engine: AsyncEngine) -> None:
    """Initialize database tables using async engine."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get async database session with proper transaction management."""
    session_factory: async_sessionmaker[AsyncSession] = (
        request.app.state.session_factory
    )
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
