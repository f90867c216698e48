"""Sending chat messages and attachments.

A send is committed before anything else happens; the change event and the
push to the other party follow, and neither can fail the send.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import PurePath
from uuid import UUID, uuid4

from tsupport.common.code import ErrCode
from tsupport.configs import configs
from tsupport.core.attachments import AttachmentStore
from tsupport.core.feed import ChangeFeedPublisher, ChangeKind
from tsupport.core.notification import Audience
from tsupport.infra.database import SessionFactory
from tsupport.models.chat import Chat, ChatStatus
from tsupport.models.message import AttachmentType, MessageCreate, MessageRead, SenderRole
from tsupport.repos.message import MessageRepository

from .constants import ATTACHMENT_SENT
from .transaction import require_chat, write_transaction

logger = logging.getLogger(__name__)

Notifier = Callable[[Audience, str], Awaitable[None]]


def attachment_path(chat_id: UUID, filename: str) -> str:
    """``{chat_id}/{random}.{ext}``; the original name only survives in the message."""
    suffix = PurePath(filename).suffix.lower()
    return f"{chat_id}/{uuid4().hex}{suffix}"


class MessageService:
    def __init__(
        self,
        session_factory: SessionFactory,
        publisher: ChangeFeedPublisher | None = None,
        notifier: Notifier | None = None,
        attachment_store: AttachmentStore | None = None,
        max_attachment_bytes: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._notifier = notifier
        self._attachment_store = attachment_store
        self.max_attachment_bytes = (
            configs.Attachments.MaxBytes if max_attachment_bytes is None else max_attachment_bytes
        )

    async def send(self, chat_id: UUID, role: SenderRole, content: str) -> MessageRead:
        content = content.strip()
        if not content:
            raise ErrCode.INVALID_REQUEST.with_messages("Message content cannot be empty")
        return await self._insert(MessageCreate(chat_id=chat_id, content=content, sender_role=role))

    async def send_attachment(
        self,
        chat_id: UUID,
        role: SenderRole,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ) -> MessageRead:
        if len(data) > self.max_attachment_bytes:
            limit_mb = self.max_attachment_bytes // (1024 * 1024)
            raise ErrCode.PAYLOAD_TOO_LARGE.with_messages(f"File too large. Max {limit_mb}MB.")
        if self._attachment_store is None:
            raise ErrCode.UPLOAD_FAILED.with_messages("Attachments are not configured")

        filename = PurePath(filename or "file").name
        # No orphaned uploads for chats that cannot take messages.
        await self._check_open(chat_id)

        path = attachment_path(chat_id, filename)
        try:
            url = await self._attachment_store.upload(path, data, content_type)
        except Exception as e:
            logger.warning("Upload of %s for chat %s failed: %s", filename, chat_id, e)
            raise ErrCode.UPLOAD_FAILED.with_messages(f"Failed to upload {filename}") from e

        return await self._insert(
            MessageCreate(
                chat_id=chat_id,
                content=ATTACHMENT_SENT.format(name=filename),
                sender_role=role,
                attachment_url=url,
                attachment_type=AttachmentType.from_content_type(content_type),
                attachment_name=filename,
            )
        )

    async def list_messages(self, chat_id: UUID) -> list[MessageRead]:
        async with self._session_factory() as db:
            await require_chat(db, chat_id)
            rows = await MessageRepository(db).list_by_chat(chat_id)
            return [MessageRead.model_validate(row) for row in rows]

    async def _check_open(self, chat_id: UUID) -> Chat:
        async with self._session_factory() as db:
            return self._ensure_open(await require_chat(db, chat_id))

    @staticmethod
    def _ensure_open(chat: Chat) -> Chat:
        if chat.status != ChatStatus.ACTIVE:
            raise ErrCode.CHAT_CLOSED.with_messages("This chat has been closed")
        return chat

    async def _insert(self, data: MessageCreate) -> MessageRead:
        async with write_transaction(self._session_factory, "send message") as db:
            chat = self._ensure_open(await require_chat(db, data.chat_id))
            customer_id = chat.customer_id
            message = MessageRead.model_validate(await MessageRepository(db).create(data))

        if self._publisher is not None:
            await self._publisher.publish_model("messages", ChangeKind.INSERT, message)
        await self._notify(message, customer_id)
        return message

    async def _notify(self, message: MessageRead, customer_id: str) -> None:
        target = message.sender_role.counterpart
        if self._notifier is None or target is None:
            return
        audience = Audience.agents() if target is SenderRole.AGENT else Audience.customer(customer_id)
        try:
            await self._notifier(audience, message.content)
        except Exception:
            logger.warning("Push for message %s to %s failed", message.id, audience, exc_info=True)
