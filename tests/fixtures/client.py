from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.api.deps import get_access_gate, get_attachment_store, get_notifier
from tsupport.core.access import AccessGate
from tsupport.core.attachments import LocalAttachmentStore
from tsupport.core.notification import Audience
from tsupport.infra.database import get_session, get_session_factory
from tsupport.infra.redis import get_redis_dependency
from tsupport.main import app
from tests.fixtures.redis import FakeRedis


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[Audience, str]] = []

    async def __call__(self, audience: Audience, content: str) -> None:
        self.calls.append((audience, content))


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def async_client(
    recording_notifier: RecordingNotifier,
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: FakeRedis,
    access_gate: AccessGate,
    tmp_path: Path,
) -> AsyncGenerator[AsyncClient, None]:
    """App client wired to the test database, the pub/sub double and a recording notifier."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_get_redis() -> AsyncGenerator[FakeRedis, None]:
        yield fake_redis

    overrides: dict[Callable, Callable] = {
        get_session: override_get_session,
        get_session_factory: lambda: session_factory,
        get_redis_dependency: override_get_redis,
        get_access_gate: lambda: access_gate,
        get_notifier: lambda: recording_notifier,
        get_attachment_store: lambda: LocalAttachmentStore(tmp_path / "files", "http://test/attachments"),
    }
    app.dependency_overrides.update(overrides)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
