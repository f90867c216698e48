import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.common.code import ErrCode, ErrCodeError
from tsupport.infra.database import SessionFactory
from tsupport.models.chat import Chat
from tsupport.repos.chat import ChatRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def write_transaction(session_factory: SessionFactory, action: str) -> AsyncGenerator[AsyncSession, None]:
    """Commit on success; roll back and raise ``WRITE_FAILED`` on a store error."""
    async with session_factory() as db:
        try:
            yield db
            await db.commit()
        except ErrCodeError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to %s: %s", action, e)
            raise ErrCode.WRITE_FAILED.with_messages(f"Failed to {action}, please retry") from e


async def require_chat(db: AsyncSession, chat_id: UUID) -> Chat:
    chat = await ChatRepository(db).get_by_id(chat_id)
    if chat is None:
        raise ErrCode.CHAT_NOT_FOUND.with_messages(f"Chat {chat_id} not found")
    return chat
