"""Chat state machine.

    active-unassigned <-> active-assigned
            \\                 /
             -> closed-unrated -> closed-rated

Every transition is one transaction: the chat update plus, where the
transition calls for one, a system message. Change events are published
after commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.common.code import ErrCode, ErrCodeError
from tsupport.core.access import AccessGate
from tsupport.core.feed import ChangeFeedPublisher, ChangeKind
from tsupport.infra.database import SessionFactory
from tsupport.models.chat import Chat, ChatCreate, ChatRead, ChatStatus
from tsupport.models.message import MessageCreate, MessageRead, SenderRole
from tsupport.repos.chat import ChatRepository
from tsupport.repos.message import MessageRepository

from .constants import (
    AGENT_JOINED,
    AGENT_LEFT,
    CLOSED_BY_AGENT,
    ENDED_BY_CUSTOMER,
    RATING_MAX,
    RATING_MIN,
)
from .handle import LocalSessionHandle
from .transaction import require_chat, write_transaction

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    NO_SESSION = "no-session"
    ACTIVE_UNASSIGNED = "active-unassigned"
    ACTIVE_ASSIGNED = "active-assigned"
    CLOSED_UNRATED = "closed-unrated"
    CLOSED_RATED = "closed-rated"


def session_state(chat: Chat | ChatRead | None) -> SessionState:
    if chat is None:
        return SessionState.NO_SESSION
    if chat.status == ChatStatus.CLOSED:
        return SessionState.CLOSED_RATED if chat.rating is not None else SessionState.CLOSED_UNRATED
    # Leaving clears agent_name and keeps the chat active: same as never assigned.
    return SessionState.ACTIVE_ASSIGNED if chat.agent_name else SessionState.ACTIVE_UNASSIGNED


class RatingOutcome(StrEnum):
    ACCEPTED = "accepted"
    ALREADY_RATED = "already-rated"


@dataclass(frozen=True)
class ResumeResult:
    state: SessionState
    handle: LocalSessionHandle | None = None
    chat: ChatRead | None = None
    discard_handle: bool = False

    @property
    def resumed(self) -> bool:
        return self.state is not SessionState.NO_SESSION


class SessionLifecycleManager:
    def __init__(
        self,
        session_factory: SessionFactory,
        access_gate: AccessGate,
        publisher: ChangeFeedPublisher | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._access_gate = access_gate
        self._publisher = publisher

    # --- Reads -----------------------------------------------------------------

    async def get_chat(self, chat_id: UUID) -> ChatRead:
        try:
            async with self._session_factory() as db:
                chat = await ChatRepository(db).get_by_id(chat_id)
                if chat is None:
                    raise ErrCode.CHAT_NOT_FOUND.with_messages(f"Chat {chat_id} not found")
                return ChatRead.model_validate(chat)
        except SQLAlchemyError as e:
            logger.error("Failed to load chat %s: %s", chat_id, e)
            raise ErrCode.SERVICE_UNAVAILABLE.with_messages("Could not load chat, please retry") from e

    async def list_chats(self, status: ChatStatus | None = None) -> list[ChatRead]:
        try:
            async with self._session_factory() as db:
                chats = await ChatRepository(db).list_all(status)
                return [ChatRead.model_validate(c) for c in chats]
        except SQLAlchemyError as e:
            logger.error("Failed to list chats: %s", e)
            raise ErrCode.SERVICE_UNAVAILABLE.with_messages("Could not load chats, please retry") from e

    # --- Transitions -------------------------------------------------------------

    async def create_chat(self, customer_id: str, subject: str, display_name: str) -> ChatRead:
        if not await self._access_gate.validate(customer_id):
            logger.info("Rejected chat creation for unknown customer id %r", customer_id)
            raise ErrCode.INVALID_CUSTOMER_ID.with_messages("Invalid Customer ID")

        try:
            data = ChatCreate(
                customer_id=customer_id.strip(),
                subject=subject.strip(),
                customer_name=display_name.strip(),
            )
        except ValidationError as e:
            raise ErrCode.INVALID_REQUEST.with_messages("Subject and name are required") from e

        async with write_transaction(self._session_factory, "start chat") as db:
            chat = ChatRead.model_validate(await ChatRepository(db).create(data))

        logger.info("Chat %s created for customer %s", chat.id, chat.customer_id)
        await self._publish_chat(chat, ChangeKind.INSERT)
        return chat

    async def assign_agent(self, chat_id: UUID, agent_name: str) -> ChatRead:
        agent_name = agent_name.strip()
        if not agent_name:
            raise ErrCode.INVALID_REQUEST.with_messages("Agent name is required")

        async with write_transaction(self._session_factory, "assign agent") as db:
            chat = await self._require_active(db, chat_id, "assign an agent to")
            chat = await ChatRepository(db).set_agent_name(chat, agent_name)
            note = await self._system_message(db, chat_id, AGENT_JOINED.format(agent=agent_name))
            result = ChatRead.model_validate(chat)

        logger.info("Chat %s assigned to %s", chat_id, agent_name)
        await self._publish_chat(result, ChangeKind.UPDATE)
        await self._publish_message(note)
        return result

    async def leave_chat(self, chat_id: UUID, agent_name: str) -> ChatRead:
        async with write_transaction(self._session_factory, "leave chat") as db:
            chat = await self._require_active(db, chat_id, "leave")
            chat = await ChatRepository(db).set_agent_name(chat, None)
            note = await self._system_message(db, chat_id, AGENT_LEFT.format(agent=agent_name))
            result = ChatRead.model_validate(chat)

        logger.info("%s left chat %s", agent_name, chat_id)
        await self._publish_chat(result, ChangeKind.UPDATE)
        await self._publish_message(note)
        return result

    async def close_chat(self, chat_id: UUID, closed_by: SenderRole) -> ChatRead:
        if closed_by is SenderRole.AGENT:
            text = CLOSED_BY_AGENT
        elif closed_by is SenderRole.CUSTOMER:
            text = ENDED_BY_CUSTOMER
        else:
            raise ErrCode.INVALID_REQUEST.with_messages("Only an agent or the customer can close a chat")

        # Repeated closes still append their system message.
        async with write_transaction(self._session_factory, "close chat") as db:
            chat = await require_chat(db, chat_id)
            chat = await ChatRepository(db).set_status(chat, ChatStatus.CLOSED)
            note = await self._system_message(db, chat_id, text)
            result = ChatRead.model_validate(chat)

        logger.info("Chat %s closed by %s", chat_id, closed_by)
        await self._publish_chat(result, ChangeKind.UPDATE)
        await self._publish_message(note)
        return result

    async def submit_rating(self, chat_id: UUID, rating: int, review: str | None = None) -> RatingOutcome:
        if isinstance(rating, bool) or not isinstance(rating, int) or not RATING_MIN <= rating <= RATING_MAX:
            raise ErrCode.INVALID_RATING.with_messages(f"Rating must be between {RATING_MIN} and {RATING_MAX}")

        async with write_transaction(self._session_factory, "submit review") as db:
            chat = await require_chat(db, chat_id)
            if chat.rating is not None:
                return RatingOutcome.ALREADY_RATED
            if chat.status != ChatStatus.CLOSED:
                raise ErrCode.INVALID_TRANSITION.with_messages("Only a closed chat can be rated")
            review = review.strip() if review and review.strip() else None
            result = ChatRead.model_validate(await ChatRepository(db).set_rating(chat, rating, review))

        logger.info("Chat %s rated %d", chat_id, rating)
        await self._publish_chat(result, ChangeKind.UPDATE)
        return RatingOutcome.ACCEPTED

    # --- Resumption --------------------------------------------------------------

    async def resume(self, handle: LocalSessionHandle | None) -> ResumeResult:
        """Decide whether a stored handle still points at a chat worth showing."""
        if handle is None:
            return ResumeResult(SessionState.NO_SESSION)

        try:
            chat = await self.get_chat(handle.chat_id)
        except ErrCodeError as e:
            if e.code != ErrCode.CHAT_NOT_FOUND:
                raise
            logger.info("Session handle points at missing chat %s, discarding", handle.chat_id)
            return ResumeResult(SessionState.NO_SESSION, discard_handle=True)

        if chat.rating is not None:
            # A rated chat is finished for good; the customer starts over.
            return ResumeResult(SessionState.NO_SESSION, chat=chat, discard_handle=True)

        return ResumeResult(session_state(chat), handle=handle, chat=chat)

    # --- Helpers -----------------------------------------------------------------

    @staticmethod
    async def _require_active(db: AsyncSession, chat_id: UUID, verb: str) -> Chat:
        chat = await require_chat(db, chat_id)
        if chat.status != ChatStatus.ACTIVE:
            raise ErrCode.INVALID_TRANSITION.with_messages(f"Cannot {verb} a closed chat")
        return chat

    @staticmethod
    async def _system_message(db: AsyncSession, chat_id: UUID, content: str) -> MessageRead:
        message = await MessageRepository(db).create(
            MessageCreate(chat_id=chat_id, content=content, sender_role=SenderRole.SYSTEM)
        )
        return MessageRead.model_validate(message)

    async def _publish_chat(self, chat: ChatRead, kind: ChangeKind) -> None:
        if self._publisher is not None:
            await self._publisher.publish_model("chats", kind, chat)

    async def _publish_message(self, message: MessageRead) -> None:
        if self._publisher is not None:
            await self._publisher.publish_model("messages", ChangeKind.INSERT, message)
