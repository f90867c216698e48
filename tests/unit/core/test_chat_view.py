from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from tsupport.core.chat.synchronizer import ChatView
from tsupport.models.message import MessageRead, SenderRole

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _message(chat_id, seconds: int, content: str = "hi") -> MessageRead:
    return MessageRead(
        id=uuid4(),
        chat_id=chat_id,
        content=content,
        sender_role=SenderRole.CUSTOMER,
        created_at=BASE + timedelta(seconds=seconds),
    )


@pytest.mark.unit
class TestChatViewMerge:
    def test_duplicate_ids_are_kept_once(self) -> None:
        chat_id = uuid4()
        view = ChatView(chat_id)
        first, second = _message(chat_id, 1), _message(chat_id, 2)

        view.seed([first, second])
        assert not view.merge(second)
        assert view.merge(_message(chat_id, 3))

        expected = [first.created_at, second.created_at, BASE + timedelta(seconds=3)]
        assert [m.created_at for m in view.messages] == expected
        assert len(view) == 3

    def test_late_message_is_inserted_in_order(self) -> None:
        chat_id = uuid4()
        view = ChatView(chat_id)
        view.seed([_message(chat_id, 1, "a"), _message(chat_id, 5, "c")])

        view.merge(_message(chat_id, 3, "b"))

        assert [m.content for m in view.messages] == ["a", "b", "c"]

    def test_membership_by_id(self) -> None:
        chat_id = uuid4()
        view = ChatView(chat_id)
        message = _message(chat_id, 1)
        view.seed([message])
        assert message.id in view
        assert uuid4() not in view

    async def test_wait_for_returns_false_on_timeout(self) -> None:
        view = ChatView(uuid4())
        assert not await view.wait_for(lambda v: len(v) > 0, timeout=0.05)
        await view.close()
        assert view.closed
