from uuid import UUID

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.message import Message, MessageCreate


class MessageRepository:
    """Append-only access to chat messages."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: MessageCreate) -> Message:
        message = Message(**data.model_dump())
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message)
        return message

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return await self.db.get(Message, message_id)

    async def list_by_chat(self, chat_id: UUID) -> list[Message]:
        stmt = select(Message).where(col(Message.chat_id) == chat_id).order_by(col(Message.created_at).asc())
        result = await self.db.exec(stmt)
        return list(result.all())
