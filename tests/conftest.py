import os

# Must be set before tsupport.configs is imported anywhere.
os.environ.setdefault("TSUPPORT_Database_Engine", "sqlite")
os.environ.setdefault("TSUPPORT_Database_SQLite_Path", ":memory:")

from collections.abc import AsyncGenerator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

import tsupport.models  # noqa: E402,F401
from tsupport.core.access import AccessGate  # noqa: E402
from tsupport.core.feed import ChangeFeedAdapter, ChangeFeedPublisher  # noqa: E402
from tsupport.core.presence import BroadcastChannel  # noqa: E402
from tests.fixtures.client import async_client, recording_notifier  # noqa: E402,F401
from tests.fixtures.redis import FakeRedis  # noqa: E402

STATIC_CUSTOMER_IDS = ("CUST1", "CUST2", "customer5")


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite file per test; every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def publisher(fake_redis: FakeRedis) -> ChangeFeedPublisher:
    return ChangeFeedPublisher(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def feed(fake_redis: FakeRedis) -> ChangeFeedAdapter:
    return ChangeFeedAdapter(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def broadcast(fake_redis: FakeRedis) -> BroadcastChannel:
    return BroadcastChannel(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def access_gate(session_factory: async_sessionmaker[AsyncSession]) -> AccessGate:
    return AccessGate(session_factory, static_ids=STATIC_CUSTOMER_IDS)
