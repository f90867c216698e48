import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.chat import ChatStatus
from tsupport.models.message import SenderRole
from tsupport.repos.chat import ChatRepository
from tsupport.repos.message import MessageRepository
from tests.factories.chat import ChatCreateFactory, MessageCreateFactory


@pytest.mark.integration
class TestChatRepository:
    """Integration tests for ChatRepository and MessageRepository."""

    async def test_create_and_get_chat(self, db_session: AsyncSession):
        repo = ChatRepository(db_session)
        data = ChatCreateFactory.build()

        chat = await repo.create(data)
        await db_session.commit()

        fetched = await repo.get_by_id(chat.id)
        assert fetched is not None
        assert fetched.status == ChatStatus.ACTIVE
        assert fetched.agent_name is None
        assert fetched.rating is None
        assert fetched.subject == data.subject

    async def test_list_all_newest_first_and_by_status(self, db_session: AsyncSession):
        repo = ChatRepository(db_session)
        older = await repo.create(ChatCreateFactory.build())
        newer = await repo.create(ChatCreateFactory.build())
        await repo.set_status(older, ChatStatus.CLOSED)
        await db_session.commit()

        assert [c.id for c in await repo.list_all()] == [newer.id, older.id]
        assert [c.id for c in await repo.list_all(ChatStatus.CLOSED)] == [older.id]

    async def test_messages_listed_in_creation_order(self, db_session: AsyncSession):
        chat = await ChatRepository(db_session).create(ChatCreateFactory.build())
        repo = MessageRepository(db_session)
        first = await repo.create(MessageCreateFactory.build(chat_id=chat.id, content="first"))
        second = await repo.create(
            MessageCreateFactory.build(chat_id=chat.id, content="second", sender_role=SenderRole.AGENT)
        )
        await repo.create(MessageCreateFactory.build(content="elsewhere"))
        await db_session.commit()

        messages = await repo.list_by_chat(chat.id)
        assert [m.id for m in messages] == [first.id, second.id]
