from uuid import UUID

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.chat import Chat, ChatCreate, ChatStatus


class ChatRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: ChatCreate) -> Chat:
        chat = Chat(
            customer_id=data.customer_id,
            subject=data.subject,
            customer_name=data.customer_name,
            status=ChatStatus.ACTIVE,
        )
        self.db.add(chat)
        await self.db.flush()
        await self.db.refresh(chat)
        return chat

    async def get_by_id(self, chat_id: UUID) -> Chat | None:
        return await self.db.get(Chat, chat_id)

    async def list_all(self, status: ChatStatus | None = None) -> list[Chat]:
        """Newest first, the order the agent dashboard shows them in."""
        stmt = select(Chat)
        if status is not None:
            stmt = stmt.where(col(Chat.status) == status)
        stmt = stmt.order_by(col(Chat.created_at).desc())
        result = await self.db.exec(stmt)
        return list(result.all())

    async def set_agent_name(self, chat: Chat, agent_name: str | None) -> Chat:
        chat.agent_name = agent_name
        return await self._save(chat)

    async def set_status(self, chat: Chat, status: ChatStatus) -> Chat:
        chat.status = status
        return await self._save(chat)

    async def set_rating(self, chat: Chat, rating: int, review_comment: str | None) -> Chat:
        chat.rating = rating
        chat.review_comment = review_comment
        return await self._save(chat)

    async def _save(self, chat: Chat) -> Chat:
        self.db.add(chat)
        await self.db.flush()
        await self.db.refresh(chat)
        return chat
