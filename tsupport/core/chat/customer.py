"""Customer-side client: one device, at most one open chat at a time."""

from __future__ import annotations

import logging
from collections.abc import Callable

from tsupport.common.code import ErrCode
from tsupport.models.chat import ChatRead
from tsupport.models.message import SenderRole

from .handle import LocalSessionHandle, SessionHandleStore
from .lifecycle import RatingOutcome, ResumeResult, SessionLifecycleManager, SessionState
from .session import ChatCallback, ChatSession, ChatSessionFactory
from .synchronizer import MessageCallback

logger = logging.getLogger(__name__)


class CustomerClient:
    """Owns the stored session handle and the currently open :class:`ChatSession`.

    Construct one per device and ``close()`` it when the device goes away.
    """

    def __init__(
        self,
        lifecycle: SessionLifecycleManager,
        handle_store: SessionHandleStore,
        sessions: ChatSessionFactory,
        on_message: MessageCallback | None = None,
        on_chat_update: ChatCallback | None = None,
        on_typing_change: Callable[[bool], None] | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._handle_store = handle_store
        self._sessions = sessions
        self._on_message = on_message
        self._on_chat_update = on_chat_update
        self._on_typing_change = on_typing_change
        self._session: ChatSession | None = None
        self._handle: LocalSessionHandle | None = None

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def handle(self) -> LocalSessionHandle | None:
        return self._handle

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.NO_SESSION
        return self._session.state

    async def resume(self) -> ResumeResult:
        """Pick up the chat named by the stored handle, if it is still worth showing."""
        await self._close_session()
        result = await self._lifecycle.resume(self._handle_store.load())
        if result.discard_handle:
            self._handle_store.clear()
            self._handle = None
        if result.resumed and result.chat is not None:
            self._handle = result.handle
            await self._open(result.chat)
        return result

    async def start_chat(self, customer_id: str, subject: str, display_name: str) -> ChatSession:
        await self._close_session()
        chat = await self._lifecycle.create_chat(customer_id, subject, display_name)
        self._handle = LocalSessionHandle(
            chat_id=chat.id,
            customer_id=chat.customer_id,
            subject=chat.subject,
            display_name=chat.customer_name,
        )
        self._handle_store.save(self._handle)
        return await self._open(chat)

    async def end_chat(self) -> ChatRead:
        session = self._require_session()
        return await self._lifecycle.close_chat(session.chat_id, SenderRole.CUSTOMER)

    async def submit_rating(self, rating: int, review: str | None = None) -> RatingOutcome:
        chat_id = self._session.chat_id if self._session is not None else None
        if chat_id is None and self._handle is not None:
            chat_id = self._handle.chat_id
        if chat_id is None:
            raise ErrCode.INVALID_TRANSITION.with_messages("There is no chat to rate")
        return await self._lifecycle.submit_rating(chat_id, rating, review)

    async def start_new_chat(self) -> None:
        """Forget the current chat so the next start creates a fresh one."""
        self._handle_store.clear()
        self._handle = None
        await self._close_session()

    async def close(self) -> None:
        await self._close_session()

    async def __aenter__(self) -> CustomerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _open(self, chat: ChatRead) -> ChatSession:
        self._session = await self._sessions.open(
            chat,
            SenderRole.CUSTOMER,
            on_message=self._on_message,
            on_chat_update=self._on_chat_update,
            on_typing_change=self._on_typing_change,
        )
        logger.debug("Customer session open on chat %s (%s)", chat.id, self._session.state)
        return self._session

    async def _close_session(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()

    def _require_session(self) -> ChatSession:
        if self._session is None:
            raise ErrCode.INVALID_TRANSITION.with_messages("No chat is open")
        return self._session
