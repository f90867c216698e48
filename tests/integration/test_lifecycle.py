from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.common.code import ErrCode, ErrCodeError
from tsupport.core.access import AccessGate
from tsupport.core.chat import LocalSessionHandle, RatingOutcome, SessionLifecycleManager, SessionState
from tsupport.core.feed import ChangeFeedPublisher
from tsupport.models.chat import ChatRead, ChatStatus
from tsupport.models.message import SenderRole
from tsupport.repos.message import MessageRepository
from tests.fixtures.redis import FakeRedis


@pytest.fixture
def lifecycle(
    session_factory: async_sessionmaker[AsyncSession],
    access_gate: AccessGate,
    publisher: ChangeFeedPublisher,
) -> SessionLifecycleManager:
    return SessionLifecycleManager(session_factory, access_gate, publisher)


async def _system_messages(session_factory, chat_id) -> list[str]:
    async with session_factory() as db:
        rows = await MessageRepository(db).list_by_chat(chat_id)
        return [m.content for m in rows if m.sender_role == SenderRole.SYSTEM]


def _handle(chat: ChatRead) -> LocalSessionHandle:
    return LocalSessionHandle(
        chat_id=chat.id, customer_id=chat.customer_id, subject=chat.subject, display_name=chat.customer_name
    )


@pytest.mark.integration
class TestCreateChat:
    async def test_invalid_customer_creates_nothing(self, lifecycle: SessionLifecycleManager):
        with pytest.raises(ErrCodeError) as exc:
            await lifecycle.create_chat("NOPE", "Help", "Bob")
        assert exc.value.code == ErrCode.INVALID_CUSTOMER_ID
        assert await lifecycle.list_chats() == []

    async def test_creates_active_unassigned_chat(self, lifecycle: SessionLifecycleManager, fake_redis: FakeRedis):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")

        assert chat.status == ChatStatus.ACTIVE
        assert chat.agent_name is None
        assert (await lifecycle.resume(_handle(chat))).state is SessionState.ACTIVE_UNASSIGNED
        assert len(fake_redis.published_on(f"feed:chats:id={chat.id}")) == 1

    async def test_blank_subject_is_rejected(self, lifecycle: SessionLifecycleManager):
        with pytest.raises(ErrCodeError) as exc:
            await lifecycle.create_chat("CUST1", "  ", "Bob")
        assert exc.value.code == ErrCode.INVALID_REQUEST


@pytest.mark.integration
class TestTransitions:
    async def test_assign_leave_close_append_system_messages(
        self, lifecycle: SessionLifecycleManager, session_factory: async_sessionmaker[AsyncSession]
    ):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")

        assigned = await lifecycle.assign_agent(chat.id, "Alice")
        assert assigned.agent_name == "Alice"

        left = await lifecycle.leave_chat(chat.id, "Alice")
        assert left.agent_name is None
        assert left.status == ChatStatus.ACTIVE

        closed = await lifecycle.close_chat(chat.id, SenderRole.AGENT)
        assert closed.status == ChatStatus.CLOSED

        assert await _system_messages(session_factory, chat.id) == [
            "Alice has joined the chat",
            "Alice has left the chat. Waiting for an agent...",
            "Chat closed by agent",
        ]

    async def test_repeated_assignment_is_still_recorded(
        self, lifecycle: SessionLifecycleManager, session_factory: async_sessionmaker[AsyncSession]
    ):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")
        await lifecycle.assign_agent(chat.id, "Alice")
        again = await lifecycle.assign_agent(chat.id, "Alice")

        assert again.agent_name == "Alice"
        assert await _system_messages(session_factory, chat.id) == ["Alice has joined the chat"] * 2

    async def test_customer_close_message(
        self, lifecycle: SessionLifecycleManager, session_factory: async_sessionmaker[AsyncSession]
    ):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")
        await lifecycle.close_chat(chat.id, SenderRole.CUSTOMER)
        assert await _system_messages(session_factory, chat.id) == ["Chat ended by customer"]

    async def test_assign_or_leave_on_closed_chat_is_rejected(self, lifecycle: SessionLifecycleManager):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")
        await lifecycle.close_chat(chat.id, SenderRole.AGENT)

        for call in (lifecycle.assign_agent(chat.id, "Alice"), lifecycle.leave_chat(chat.id, "Alice")):
            with pytest.raises(ErrCodeError) as exc:
                await call
            assert exc.value.code == ErrCode.INVALID_TRANSITION

    async def test_missing_chat(self, lifecycle: SessionLifecycleManager):
        with pytest.raises(ErrCodeError) as exc:
            await lifecycle.assign_agent(uuid4(), "Alice")
        assert exc.value.code == ErrCode.CHAT_NOT_FOUND


@pytest.mark.integration
class TestRating:
    async def test_rating_rules(self, lifecycle: SessionLifecycleManager):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")

        with pytest.raises(ErrCodeError) as exc:
            await lifecycle.submit_rating(chat.id, 5)
        assert exc.value.code == ErrCode.INVALID_TRANSITION

        await lifecycle.close_chat(chat.id, SenderRole.AGENT)

        for bad in (0, 6, -1):
            with pytest.raises(ErrCodeError) as exc:
                await lifecycle.submit_rating(chat.id, bad)
            assert exc.value.code == ErrCode.INVALID_RATING
        assert (await lifecycle.get_chat(chat.id)).rating is None

        assert await lifecycle.submit_rating(chat.id, 4, "  quick help ") is RatingOutcome.ACCEPTED
        assert await lifecycle.submit_rating(chat.id, 1, "changed my mind") is RatingOutcome.ALREADY_RATED

        rated = await lifecycle.get_chat(chat.id)
        assert rated.rating == 4
        assert rated.review_comment == "quick help"


@pytest.mark.integration
class TestResume:
    async def test_no_handle(self, lifecycle: SessionLifecycleManager):
        result = await lifecycle.resume(None)
        assert result.state is SessionState.NO_SESSION
        assert not result.discard_handle

    async def test_handle_for_missing_chat_is_discarded(self, lifecycle: SessionLifecycleManager):
        handle = LocalSessionHandle(chat_id=uuid4(), customer_id="CUST1", subject="x", display_name="y")
        result = await lifecycle.resume(handle)
        assert result.state is SessionState.NO_SESSION
        assert result.discard_handle

    async def test_states_through_the_lifecycle(self, lifecycle: SessionLifecycleManager):
        chat = await lifecycle.create_chat("CUST1", "Refund", "Bob")
        handle = _handle(chat)

        await lifecycle.assign_agent(chat.id, "Alice")
        assert (await lifecycle.resume(handle)).state is SessionState.ACTIVE_ASSIGNED

        await lifecycle.close_chat(chat.id, SenderRole.AGENT)
        closed = await lifecycle.resume(handle)
        assert closed.state is SessionState.CLOSED_UNRATED
        assert closed.handle == handle

        await lifecycle.submit_rating(chat.id, 5)
        rated = await lifecycle.resume(handle)
        assert rated.state is SessionState.NO_SESSION
        assert rated.discard_handle
