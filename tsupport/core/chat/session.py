"""One open chat, as seen by one client (customer or agent).

A :class:`ChatSession` owns everything a client holds open for a chat: the
merged message view, the chat-row update feed, the typing subscription and
the local typing countdown. ``close()`` releases all of them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from pydantic import ValidationError

from tsupport.core.feed import ChangeFeedAdapter, ChangeKind, FeedSubscription
from tsupport.core.presence import BroadcastChannel, TypingIndicator, TypingSubscription
from tsupport.models.chat import ChatRead, ChatStatus
from tsupport.models.message import MessageRead, SenderRole

from .lifecycle import SessionLifecycleManager, SessionState, session_state
from .messaging import MessageService
from .synchronizer import ChatView, MessageCallback, MessageSynchronizer

logger = logging.getLogger(__name__)

ChatCallback = Callable[[ChatRead], Awaitable[None] | None]


class ChatSession:
    def __init__(
        self,
        chat: ChatRead,
        role: SenderRole,
        view: ChatView,
        chat_feed: FeedSubscription,
        typing: TypingSubscription,
        indicator: TypingIndicator,
        messages: MessageService,
        broadcast: BroadcastChannel,
        on_chat_update: ChatCallback | None = None,
    ) -> None:
        self.role = role
        self._chat = chat
        self._view = view
        self._chat_feed = chat_feed
        self._typing = typing
        self._indicator = indicator
        self._messages = messages
        self._broadcast = broadcast
        self._on_chat_update = on_chat_update
        self._closed = False
        self._follower = asyncio.create_task(self._follow_chat(), name=f"chat-session:{chat.id}")

    @property
    def chat(self) -> ChatRead:
        return self._chat

    @property
    def chat_id(self) -> UUID:
        return self._chat.id

    @property
    def state(self) -> SessionState:
        return session_state(self._chat)

    @property
    def view(self) -> ChatView:
        return self._view

    @property
    def messages(self) -> tuple[MessageRead, ...]:
        return self._view.messages

    @property
    def is_typing(self) -> bool:
        """Whether the other party is typing right now."""
        return self._indicator.is_typing

    @property
    def is_open(self) -> bool:
        return self._chat.status == ChatStatus.ACTIVE

    @property
    def closed(self) -> bool:
        return self._closed

    async def _follow_chat(self) -> None:
        async for event in self._chat_feed:
            try:
                chat = ChatRead.model_validate(event.record)
            except ValidationError:
                logger.warning("Dropping unparseable chat update for %s", self._chat.id, exc_info=True)
                continue
            if chat.id != self._chat.id or self._closed:
                continue
            self._chat = chat
            if self._on_chat_update is None:
                continue
            try:
                result = self._on_chat_update(chat)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("on_chat_update hook failed for chat %s", chat.id)

    async def send(self, content: str) -> MessageRead:
        message = await self._messages.send(self._chat.id, self.role, content)
        # Shown right away; the feed copy of the same id is dropped on arrival.
        self._view.merge(message)
        return message

    async def send_attachment(self, filename: str, data: bytes, content_type: str | None = None) -> MessageRead:
        message = await self._messages.send_attachment(self._chat.id, self.role, filename, data, content_type)
        self._view.merge(message)
        return message

    def notify_typing(self) -> None:
        self._broadcast.announce_typing(self._chat.id, self.role)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._typing.close()
        self._indicator.clear()
        await self._chat_feed.close()
        self._follower.cancel()
        try:
            await self._follower
        except asyncio.CancelledError:
            pass
        await self._view.close()
        logger.debug("Closed %s session for chat %s", self.role, self._chat.id)

    async def __aenter__(self) -> ChatSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class ChatSessionFactory:
    """Wires a :class:`ChatSession` from the shared services."""

    def __init__(
        self,
        lifecycle: SessionLifecycleManager,
        synchronizer: MessageSynchronizer,
        feed: ChangeFeedAdapter,
        broadcast: BroadcastChannel,
        messages: MessageService,
        typing_timeout: float | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._synchronizer = synchronizer
        self._feed = feed
        self._broadcast = broadcast
        self._messages = messages
        self._typing_timeout = typing_timeout

    async def open(
        self,
        chat: ChatRead,
        role: SenderRole,
        on_message: MessageCallback | None = None,
        on_chat_update: ChatCallback | None = None,
        on_typing_change: Callable[[bool], None] | None = None,
    ) -> ChatSession:
        indicator = TypingIndicator(self._typing_timeout, on_change=on_typing_change)
        # Subscribe before re-reading the row: *chat* may already be stale, and
        # any transition committed after the read arrives on the feed.
        chat_feed = await self._feed.subscribe("chats", filter=("id", chat.id), kinds=(ChangeKind.UPDATE,))
        view: ChatView | None = None
        typing: TypingSubscription | None = None
        try:
            chat = await self._lifecycle.get_chat(chat.id)
            view = await self._synchronizer.open(chat.id, on_message)
            typing = await self._broadcast.on_typing(chat.id, role, lambda _sender: indicator.signal())
        except BaseException:
            if view is not None:
                await view.close()
            await chat_feed.close()
            raise

        return ChatSession(
            chat,
            role,
            view,
            chat_feed,
            typing,
            indicator,
            self._messages,
            self._broadcast,
            on_chat_update=on_chat_update,
        )
