"""Async database engine and session helpers."""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.configs import configs

logger = logging.getLogger(__name__)

# Anything that opens a session with `async with factory() as db:`
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _engine_kwargs() -> dict[str, Any]:
    if configs.Database.Engine.lower() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": configs.Database.Postgres.PoolSize,
        "max_overflow": configs.Database.Postgres.MaxOverflow,
        "pool_pre_ping": True,
    }


engine: AsyncEngine = create_async_engine(configs.Database.url, echo=False, **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the factory for services that open their own sessions."""
    return AsyncSessionLocal


@asynccontextmanager
async def get_task_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for Celery tasks, which run outside the request scope."""
    task_engine = create_async_engine(configs.Database.url, echo=False, **_engine_kwargs())
    factory = async_sessionmaker(task_engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await task_engine.dispose()


async def create_db_and_tables() -> None:
    import tsupport.models  # noqa: F401  (registers tables on SQLModel.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ensured (%s)", configs.Database.Engine)


__all__ = [
    "AsyncSessionLocal",
    "SessionFactory",
    "create_db_and_tables",
    "engine",
    "get_session",
    "get_session_factory",
    "get_task_db_session",
]
