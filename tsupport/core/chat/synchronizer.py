"""One client's live, ordered view of a chat's message log.

The view is the union of one bulk read and every insert event streamed for
the chat afterwards, deduplicated by message id and kept in non-decreasing
``created_at`` order.
"""

from __future__ import annotations

import asyncio
import bisect
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from tsupport.common.code import ErrCode
from tsupport.core.feed import ChangeFeedAdapter, ChangeKind, FeedSubscription
from tsupport.infra.database import SessionFactory
from tsupport.models.message import MessageRead
from tsupport.repos.message import MessageRepository

logger = logging.getLogger(__name__)

MessageCallback = Callable[[MessageRead], Awaitable[None] | None]


def _order_key(message: MessageRead) -> object:
    return message.created_at


class ChatView:
    """Merged message sequence for one open chat. Close it when done."""

    def __init__(
        self,
        chat_id: UUID,
        subscription: FeedSubscription | None = None,
        on_message: MessageCallback | None = None,
    ) -> None:
        self.chat_id = chat_id
        self._subscription = subscription
        self._on_message = on_message
        self._messages: list[MessageRead] = []
        self._ids: set[UUID] = set()
        self._closed = False
        self._consumer: asyncio.Task[None] | None = None
        self._changed = asyncio.Event()

    @property
    def messages(self) -> tuple[MessageRead, ...]:
        return tuple(self._messages)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def seed(self, messages: Iterable[MessageRead]) -> None:
        """Load the bulk read. Goes through :meth:`merge`, so no hooks fire."""
        for message in messages:
            self.merge(message)

    def merge(self, message: MessageRead) -> bool:
        """Add *message* unless its id is already present. Returns whether it was added."""
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        if not self._messages or _order_key(self._messages[-1]) <= _order_key(message):  # type: ignore[operator]
            self._messages.append(message)
        else:
            # Late delivery of an older commit; keep creation order.
            bisect.insort_right(self._messages, message, key=_order_key)  # type: ignore[arg-type]
        self._changed.set()
        return True

    def start(self) -> None:
        if self._subscription is None or self._consumer is not None:
            return
        self._consumer = asyncio.create_task(self._consume(), name=f"chat-view:{self.chat_id}")

    async def _consume(self) -> None:
        assert self._subscription is not None
        async for event in self._subscription:
            try:
                message = MessageRead.model_validate(event.record)
            except ValidationError:
                logger.warning("Dropping unparseable message event for chat %s", self.chat_id, exc_info=True)
                continue
            if message.chat_id != self.chat_id:
                continue
            if self._closed:
                return
            if self.merge(message):
                await self._deliver(message)

    async def _deliver(self, message: MessageRead) -> None:
        if self._closed or self._on_message is None:
            return
        try:
            result = self._on_message(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("on_message hook failed for chat %s", self.chat_id)

    async def wait_for(self, predicate: Callable[[ChatView], bool], timeout: float | None = None) -> bool:
        """Block until ``predicate(view)`` holds. Returns False on timeout."""

        async def _until() -> None:
            while not predicate(self):
                self._changed.clear()
                await self._changed.wait()

        try:
            await asyncio.wait_for(_until(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            await self._subscription.close()
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
        logger.debug("Closed view of chat %s", self.chat_id)

    async def __aenter__(self) -> ChatView:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class MessageSynchronizer:
    """Opens :class:`ChatView` instances. Holds no per-chat state itself."""

    def __init__(
        self,
        session_factory: SessionFactory,
        feed: ChangeFeedAdapter,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed

    async def open(self, chat_id: UUID, on_message: MessageCallback | None = None) -> ChatView:
        # Subscribe before the bulk read so an insert committed in between is
        # still seen; the id check absorbs the overlap.
        subscription = await self._feed.subscribe(
            "messages",
            filter=("chat_id", chat_id),
            kinds=(ChangeKind.INSERT,),
        )
        try:
            async with self._session_factory() as db:
                rows = await MessageRepository(db).list_by_chat(chat_id)
                initial = [MessageRead.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            await subscription.close()
            logger.error("Bulk read of chat %s failed: %s", chat_id, e)
            raise ErrCode.SERVICE_UNAVAILABLE.with_messages("Could not load messages, please retry") from e
        except BaseException:
            await subscription.close()
            raise

        view = ChatView(chat_id, subscription, on_message)
        view.seed(initial)
        view.start()
        logger.debug("Opened view of chat %s with %d message(s)", chat_id, len(initial))
        return view

    async def close(self, view: ChatView) -> None:
        await view.close()
